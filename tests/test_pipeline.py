"""
Tests for newsdesk.news.pipeline.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from newsdesk.lib.masking import mask_phone
from newsdesk.news.constants import (
    PUBLISHED_NEWS_KEY, SUBMISSIONS_KEY, REASON_SPAM, REASON_TOO_SHORT,
    STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED,
)
from newsdesk.news.errors import (
    InconsistentStateError, ServiceUnavailable, StorageFailure,
    SubmissionAlreadyProcessed, SubmissionValidationError,
)
from newsdesk.news.models import Accepted, ModerationCandidate, Submission
from newsdesk.news.moderation import RemotePolicy, RuleBasedPolicy
from newsdesk.news.pipeline import PublicationPipeline, generate_id
from newsdesk.news.store import SubmissionStore
from tests.conftest import (
    FIXED_NOW, FailingKeyValueStore, RecordingPolicy, SPRING_FESTIVAL_DESCRIPTION, make_fields,
)


class UnavailablePolicy:
    name = 'remote'

    def __init__(self):
        self.calls = 0

    def evaluate(self, candidate):
        self.calls += 1
        raise ServiceUnavailable('timed out')


class ConcurrentFinishPolicy:
    """Accepts, but another worker rejects every pending submission first."""

    name = 'racing'

    def __init__(self, store):
        self.store = store

    def evaluate(self, candidate):
        for submission in self.store.get_submissions(status=STATUS_PENDING):
            self.store.update_submission_status(submission.id, STATUS_REJECTED, 'Handled elsewhere.')
        return RuleBasedPolicy().evaluate(candidate)


class TestSubmit:
    """Tests for PublicationPipeline.submit."""

    def test_spring_festival_is_published(self, pipeline, store):
        outcome = pipeline.submit(make_fields(), submission_id='sub-1')

        assert outcome.published
        assert outcome.item.masked_phone == '555*****67'
        assert outcome.item.original_submission_id == 'sub-1'
        assert outcome.item.id != 'sub-1'
        assert outcome.item.edited_title == 'Annual Spring Festival Returns'
        assert outcome.item.published_at == FIXED_NOW
        assert store.get_submission('sub-1').status == STATUS_APPROVED
        assert store.get_published() == [outcome.item]

    def test_masked_phone_matches_mask(self, pipeline):
        phone = '+44 7700 900123'
        outcome = pipeline.submit(make_fields(publisher_phone=phone))
        assert outcome.item.masked_phone == mask_phone(phone)
        assert phone not in str(outcome.item.to_dict())

    def test_image_carried_over(self, pipeline):
        outcome = pipeline.submit(make_fields(image_uri='file:///tmp/festival.jpg'))
        assert outcome.item.image_uri == 'file:///tmp/festival.jpg'

    def test_spam_is_rejected_without_item(self, pipeline, store):
        description = "buy now click here amazing deal at the corner shop on Main Street today"
        outcome = pipeline.submit(make_fields(description=description), submission_id='sub-2')

        assert not outcome.published
        assert outcome.rejection_reason == REASON_SPAM
        submission = store.get_submission('sub-2')
        assert submission.status == STATUS_REJECTED
        assert submission.rejection_reason == REASON_SPAM
        assert store.get_published() == []

    def test_new_items_are_prepended(self, pipeline, store):
        first = pipeline.submit(make_fields())
        second = pipeline.submit(make_fields(city='Shelbyville'))
        assert [item.id for item in store.get_published()] == [second.item.id, first.item.id]

    def test_policy_sees_only_editorial_fields(self, store, id_factory):
        policy = RecordingPolicy()
        pipeline = PublicationPipeline(store, policy=policy, id_factory=id_factory)

        pipeline.submit(make_fields())

        assert policy.candidates == [ModerationCandidate(
            title='Annual Spring Festival Returns',
            description=SPRING_FESTIVAL_DESCRIPTION,
            city='Springfield',
            category='Festival',
        )]

    def test_invalid_category_stores_nothing(self, pipeline, store):
        with pytest.raises(SubmissionValidationError) as excinfo:
            pipeline.submit(make_fields(category='Gossip'))
        assert 'category' in excinfo.value.errors
        assert store.get_submissions() == []

    def test_missing_fields_listed(self, pipeline):
        with pytest.raises(SubmissionValidationError) as excinfo:
            pipeline.submit(make_fields(title='  ', publisher_phone=None))
        assert set(excinfo.value.errors) == {'title', 'publisher_phone'}

    def test_duplicate_submission_id_refused(self, pipeline, store):
        pipeline.submit(make_fields(), submission_id='sub-1')
        with pytest.raises(SubmissionValidationError):
            pipeline.submit(make_fields(), submission_id='sub-1')
        assert len(store.get_submissions()) == 1


class TestFallback:
    """Remote moderation failures fall back to the rule-based policy."""

    def test_service_unavailable_falls_back_to_rules(self, store, id_factory):
        remote = UnavailablePolicy()
        pipeline = PublicationPipeline(store, policy=remote, id_factory=id_factory)

        outcome = pipeline.submit(make_fields())

        assert remote.calls == 1
        assert outcome.published
        assert outcome.item.edited_summary.endswith('This event took place in Springfield.')

    def test_fallback_still_rejects_spam(self, store, id_factory):
        pipeline = PublicationPipeline(store, policy=UnavailablePolicy(), id_factory=id_factory)
        outcome = pipeline.submit(make_fields(title='Free money for every resident today'))
        assert outcome.rejection_reason == REASON_SPAM

    def test_malformed_remote_reply_falls_back_to_rules(self, store, id_factory):
        replies = []

        def llm(system_prompt, user_prompt):
            replies.append(user_prompt)
            return 'Sure! Here is my verdict: looks fine'

        pipeline = PublicationPipeline(store, policy=RemotePolicy(llm), id_factory=id_factory)

        outcome = pipeline.submit(make_fields(), submission_id='sub-1')

        assert len(replies) == 1
        assert outcome.published
        assert outcome.item.edited_title == 'Annual Spring Festival Returns'
        assert outcome.item.edited_summary == (
            SPRING_FESTIVAL_DESCRIPTION + ' This event took place in Springfield.'
        )
        assert store.get_submission('sub-1').status == STATUS_APPROVED

    def test_malformed_remote_reply_still_rejects_by_rules(self, store, id_factory):
        pipeline = PublicationPipeline(
            store, policy=RemotePolicy(lambda s, u: '{"isValid": "yes"}'), id_factory=id_factory
        )
        outcome = pipeline.submit(make_fields(description='Too short.'), submission_id='sub-1')

        assert outcome.rejection_reason == REASON_TOO_SHORT
        assert store.get_published() == []


class TestFailureSemantics:
    """Storage failures during and after moderation."""

    def test_intake_failure_aborts(self, id_factory):
        kv = FailingKeyValueStore(fail_keys={SUBMISSIONS_KEY})
        policy = RecordingPolicy()
        pipeline = PublicationPipeline(SubmissionStore(kv), policy=policy, id_factory=id_factory)

        with pytest.raises(StorageFailure):
            pipeline.submit(make_fields())

        assert policy.candidates == []
        assert kv.get(SUBMISSIONS_KEY) == []

    def test_publish_failure_is_inconsistent_state(self, id_factory):
        kv = FailingKeyValueStore(fail_keys={PUBLISHED_NEWS_KEY})
        store = SubmissionStore(kv)
        pipeline = PublicationPipeline(store, id_factory=id_factory)

        with pytest.raises(InconsistentStateError) as excinfo:
            pipeline.submit(make_fields(), submission_id='sub-1')

        assert excinfo.value.submission_id == 'sub-1'
        assert isinstance(excinfo.value.decision, Accepted)
        # Neither half of the approve + publish write happened
        assert store.get_submission('sub-1').status == STATUS_PENDING
        assert store.get_published() == []

    def test_rejection_write_failure_is_inconsistent_state(self, id_factory):
        kv = FailingKeyValueStore(fail_keys={SUBMISSIONS_KEY}, succeed_first=1)
        store = SubmissionStore(kv)
        pipeline = PublicationPipeline(store, id_factory=id_factory)

        with pytest.raises(InconsistentStateError):
            pipeline.submit(make_fields(description='Too short.'), submission_id='sub-1')

        assert store.get_submission('sub-1').status == STATUS_PENDING

    def test_reprocess_after_failure_publishes(self, id_factory):
        kv = FailingKeyValueStore(fail_keys={PUBLISHED_NEWS_KEY})
        store = SubmissionStore(kv)
        pipeline = PublicationPipeline(store, id_factory=id_factory)
        with pytest.raises(InconsistentStateError):
            pipeline.submit(make_fields(), submission_id='sub-1')

        kv.fail_keys.clear()
        outcome = pipeline.reprocess('sub-1')

        assert outcome.published
        assert store.get_submission('sub-1').status == STATUS_APPROVED
        assert len(store.get_published()) == 1


class TestReprocess:
    """Tests for reprocess and reprocess_pending."""

    def test_reprocess_refuses_finished_submission(self, pipeline):
        pipeline.submit(make_fields(), submission_id='sub-1')
        with pytest.raises(SubmissionAlreadyProcessed):
            pipeline.reprocess('sub-1')

    def test_reprocess_unknown_submission(self, pipeline):
        with pytest.raises(KeyError):
            pipeline.reprocess('missing')

    def test_reprocess_pending_reconciles_all(self, id_factory):
        kv = FailingKeyValueStore(fail_keys={PUBLISHED_NEWS_KEY})
        store = SubmissionStore(kv)
        pipeline = PublicationPipeline(store, id_factory=id_factory)
        for submission_id in ('sub-1', 'sub-2'):
            with pytest.raises(InconsistentStateError):
                pipeline.submit(make_fields(), submission_id=submission_id)

        outcomes, failed = pipeline.reprocess_pending()
        assert outcomes == []
        assert failed == ['sub-1', 'sub-2']

        kv.fail_keys.clear()
        outcomes, failed = pipeline.reprocess_pending()
        assert [o.submission.id for o in outcomes] == ['sub-1', 'sub-2']
        assert failed == []
        assert store.get_submissions(status=STATUS_PENDING) == []

    def test_concurrently_finished_submission_is_not_inconsistent(self, store, id_factory):
        pipeline = PublicationPipeline(store, policy=ConcurrentFinishPolicy(store), id_factory=id_factory)

        with pytest.raises(SubmissionAlreadyProcessed) as excinfo:
            pipeline.submit(make_fields(), submission_id='sub-1')

        assert excinfo.value.status == STATUS_REJECTED
        assert store.get_submission('sub-1').status == STATUS_REJECTED
        assert store.get_published() == []

    def test_reprocess_pending_skips_concurrently_finished(self, store, id_factory):
        store.save_submission(Submission(
            id='sub-1', title='Annual Spring Festival Returns', description=SPRING_FESTIVAL_DESCRIPTION,
            city='Springfield', category='Festival', publisher_name='Jane Doe',
            publisher_phone='5551234567', submitted_at=FIXED_NOW,
        ))
        pipeline = PublicationPipeline(store, policy=ConcurrentFinishPolicy(store), id_factory=id_factory)

        outcomes, failed = pipeline.reprocess_pending()

        assert outcomes == []
        assert failed == []
        assert store.get_submission('sub-1').status == STATUS_REJECTED


class TestConcurrency:
    """Concurrent submits never lose writes."""

    def test_parallel_submissions(self, store):
        lock = threading.Lock()
        counter = iter(range(1, 1000))

        def next_id():
            with lock:
                return f"id-{next(counter)}"

        pipeline = PublicationPipeline(store, id_factory=next_id)

        with ThreadPoolExecutor(max_workers=8) as executor:
            outcomes = list(executor.map(
                lambda n: pipeline.submit(make_fields(city=f"Town {n}")), range(20)
            ))

        assert all(outcome.published for outcome in outcomes)
        assert len(store.get_submissions(status=STATUS_APPROVED)) == 20
        assert len(store.get_published()) == 20


class TestGenerateId:
    def test_unique(self):
        ids = {generate_id() for _ in range(200)}
        assert len(ids) == 200
