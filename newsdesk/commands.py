from flask.cli import AppGroup
import click
import json

from newsdesk.lib.time import parse_iso, utcnow_naive
from newsdesk.news.analytics import NewsAnalyticsService
from newsdesk.news.constants import NEWS_CATEGORIES, SUBMISSION_STATUSES
from newsdesk.news.errors import (
    InconsistentStateError, StorageFailure, SubmissionAlreadyProcessed, SubmissionValidationError
)
from newsdesk.services import get_services

news_cli = AppGroup('news', help='Community news submission and publishing.')


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _owner_id(user):
    identity = get_services().identity
    if user:
        identity.sign_in(user)
    return identity.current_owner_id()


def _parse_when(value, name):
    try:
        return parse_iso(value)
    except ValueError:
        raise click.BadParameter(f"expected an ISO date or datetime, got {value!r}", param_hint=name)


@news_cli.command('submit')
@click.option('--title', required=True)
@click.option('--description', required=True)
@click.option('--city', required=True)
@click.option('--category', type=click.Choice(NEWS_CATEGORIES), default='Other', show_default=True)
@click.option('--publisher-name', required=True)
@click.option('--publisher-phone', required=True)
@click.option('--image-uri', default=None)
def submit_news(title, description, city, category, publisher_name, publisher_phone, image_uri):
    """Submit a news item for moderation and publication."""
    pipeline = get_services().pipeline
    try:
        outcome = pipeline.submit({
            'title': title,
            'description': description,
            'city': city,
            'category': category,
            'publisher_name': publisher_name,
            'publisher_phone': publisher_phone,
            'image_uri': image_uri,
        })
    except SubmissionValidationError as e:
        raise click.ClickException(f"Invalid submission: {e}")
    except StorageFailure as e:
        raise click.ClickException(f"Submission could not be saved: {e}")
    except InconsistentStateError as e:
        raise click.ClickException(
            f"{e}. Run 'flask news reprocess-pending' to retry."
        )
    except SubmissionAlreadyProcessed as e:
        raise click.ClickException(str(e))

    _echo_json(outcome.to_dict())


@news_cli.command('feed')
@click.option('--city', default=None, help='Case-insensitive city substring.')
@click.option('--category', type=click.Choice(NEWS_CATEGORIES), default=None)
@click.option('--bookmarked', is_flag=True, help='Only items bookmarked by the reader.')
@click.option('--user', default=None, help='Reader user id (defaults to this device).')
def show_feed(city, category, bookmarked, user):
    """List published news, newest first."""
    store = get_services().store
    items = store.get_published(city=city, category=category)
    if bookmarked:
        bookmarks = set(store.get_bookmarks(_owner_id(user)))
        items = [item for item in items if item.id in bookmarks]
    _echo_json([item.to_dict() for item in items])


@news_cli.command('submissions')
@click.option('--status', type=click.Choice(SUBMISSION_STATUSES), default=None)
def list_submissions(status):
    """List stored submissions."""
    submissions = get_services().store.get_submissions(status=status)
    _echo_json([submission.to_dict() for submission in submissions])


@news_cli.command('analytics')
@click.option('--start', default=None, help='Period start (ISO date/datetime).')
@click.option('--end', default=None, help='Period end (ISO date/datetime).')
def show_analytics(start, end):
    """Print the analytics summary, or period totals when --start is given."""
    items = get_services().store.get_published()
    if start:
        start_at = _parse_when(start, '--start')
        end_at = _parse_when(end, '--end') if end else utcnow_naive()
        _echo_json(NewsAnalyticsService.summarize_period(items, start_at, end_at))
        return
    if end:
        raise click.UsageError('--end requires --start')
    _echo_json(NewsAnalyticsService.summarize(items, utcnow_naive()).to_dict())


@news_cli.command('bookmark')
@click.argument('item_id')
@click.option('--user', default=None, help='Reader user id (defaults to this device).')
def toggle_bookmark(item_id, user):
    """Bookmark a published item, or remove the bookmark if already set."""
    store = get_services().store
    if not any(item.id == item_id for item in store.get_published()):
        raise click.ClickException(f"No published item with id {item_id}")
    is_bookmarked = store.toggle_bookmark(_owner_id(user), item_id)
    click.echo(f"{'Bookmarked' if is_bookmarked else 'Removed bookmark'} {item_id}")


@news_cli.command('reprocess-pending')
def reprocess_pending():
    """Re-moderate submissions left pending by an interrupted run."""
    outcomes, failed = get_services().pipeline.reprocess_pending()
    published = sum(1 for outcome in outcomes if outcome.published)
    click.echo(f"Reprocessed {len(outcomes)} submissions: {published} published, "
               f"{len(outcomes) - published} rejected, {len(failed)} failed")
    if failed:
        raise click.ClickException(f"Still pending: {', '.join(failed)}")


@news_cli.command('clear-data')
@click.option('--yes', is_flag=True, help='Confirm deleting everything.')
def clear_data(yes):
    """Delete all submissions, published news and bookmarks."""
    if not yes:
        raise click.UsageError('Refusing to clear data without --yes')
    get_services().store.clear_all()
    click.echo('All news data cleared')


def init_commands(app):
    app.cli.add_command(news_cli)
