"""
Tests for newsdesk.db_retry.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from newsdesk.db_retry import is_connection_error, with_store_retry
from newsdesk.news.errors import StorageFailure


def operational_error(message):
    return OperationalError('SELECT 1', {}, Exception(message))


class FlakyBackend:
    """Raises the queued errors in order, then succeeds."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0
        self.cleanups = 0

    def cleanup(self):
        self.cleanups += 1

    @with_store_retry(max_attempts=3, delay=0, on_error=lambda store: store.cleanup())
    def read(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return ['ok']


class TestIsConnectionError:
    @pytest.mark.parametrize('message', [
        'connection reset by peer',
        'SSL connection has been closed unexpectedly',
        'database is locked',
        'could not connect to server',
    ])
    def test_transient_messages(self, message):
        assert is_connection_error(operational_error(message))

    def test_redis_errors_are_transient(self):
        assert is_connection_error(RedisConnectionError('down'))

    def test_other_errors_are_not(self):
        assert not is_connection_error(operational_error('no such table: kv_collection'))


class TestWithStoreRetry:
    def test_success_first_time(self):
        backend = FlakyBackend()
        assert backend.read() == ['ok']
        assert backend.calls == 1

    def test_transient_error_retried(self):
        backend = FlakyBackend(operational_error('connection reset'), RedisConnectionError('down'))
        assert backend.read() == ['ok']
        assert backend.calls == 3
        assert backend.cleanups == 2

    def test_gives_up_after_max_attempts(self):
        backend = FlakyBackend(*[operational_error('connection reset')] * 3)
        with pytest.raises(StorageFailure):
            backend.read()
        assert backend.calls == 3

    def test_non_transient_error_fails_immediately(self):
        backend = FlakyBackend(operational_error('no such table: kv_collection'))
        with pytest.raises(StorageFailure):
            backend.read()
        assert backend.calls == 1

    def test_unexpected_error_becomes_storage_failure(self):
        backend = FlakyBackend(RuntimeError('boom'))
        with pytest.raises(StorageFailure) as excinfo:
            backend.read()
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_storage_failure_passes_through(self):
        original = StorageFailure('corrupt')
        backend = FlakyBackend(original)
        with pytest.raises(StorageFailure) as excinfo:
            backend.read()
        assert excinfo.value is original
        assert backend.cleanups == 1

    def test_attempts_read_from_app_config(self, app, app_context):
        app.config['DB_RETRY_ATTEMPTS'] = 2

        class Backend:
            calls = 0

            @with_store_retry()
            def read(self):
                self.calls += 1
                raise operational_error('connection reset')

        backend = Backend()
        with pytest.raises(StorageFailure):
            backend.read()
        assert backend.calls == 2
