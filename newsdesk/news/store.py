"""
Submission Store

Read-modify-write operations over the three news collections: submissions,
published items (newest first) and per-owner bookmark sets. Every write
reads the full collection, builds the new version and writes it back while
holding the store lock, so concurrent writers never interleave.
"""

import logging
import threading
from typing import List, Optional

from newsdesk.news.constants import (
    SUBMISSIONS_KEY, PUBLISHED_NEWS_KEY, BOOKMARKS_KEY_PREFIX,
    STATUS_APPROVED, STATUS_PENDING,
)
from newsdesk.news.errors import (
    StorageFailure, SubmissionAlreadyProcessed, SubmissionValidationError
)
from newsdesk.news.models import PublishedItem, Submission
from newsdesk.storage import KeyValueStore

logger = logging.getLogger(__name__)


def bookmarks_key(owner_id: str) -> str:
    return f"{BOOKMARKS_KEY_PREFIX}:{owner_id}"


class SubmissionStore:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._lock = threading.RLock()

    # -- loading -------------------------------------------------------------

    def _load(self, key, record_cls):
        records = self.kv.get(key)
        try:
            return [record_cls.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Corrupt record in collection '{key}': {e}")
            raise StorageFailure(f"Corrupt record in collection '{key}': {e}") from e

    @staticmethod
    def _dump(records) -> List:
        return [record.to_dict() for record in records]

    # -- submissions ---------------------------------------------------------

    def get_submissions(self, status: Optional[str] = None) -> List[Submission]:
        submissions = self._load(SUBMISSIONS_KEY, Submission)
        if status:
            submissions = [s for s in submissions if s.status == status]
        return submissions

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        for submission in self.get_submissions():
            if submission.id == submission_id:
                return submission
        return None

    def save_submission(self, submission: Submission) -> None:
        """Append a new submission. Refuses to reuse an existing id."""
        with self._lock:
            submissions = self.get_submissions()
            if any(s.id == submission.id for s in submissions):
                raise SubmissionValidationError({'id': f"Submission id already exists: {submission.id}"})
            submissions.append(submission)
            self.kv.put(SUBMISSIONS_KEY, self._dump(submissions))
        logger.info(f"Saved submission {submission.id} ({submission.category}, {submission.city})")

    def _replace_submission(self, submissions, updated: Submission) -> List[Submission]:
        replaced = False
        result = []
        for submission in submissions:
            if submission.id == updated.id:
                if submission.status != STATUS_PENDING:
                    raise SubmissionAlreadyProcessed(updated.id, submission.status)
                result.append(updated)
                replaced = True
            else:
                result.append(submission)
        if not replaced:
            raise KeyError(f"Unknown submission: {updated.id}")
        return result

    def update_submission_status(self, submission_id: str, status: str,
                                 rejection_reason: Optional[str] = None) -> Submission:
        """Move a pending submission to its terminal status."""
        with self._lock:
            submissions = self.get_submissions()
            current = next((s for s in submissions if s.id == submission_id), None)
            if current is None:
                raise KeyError(f"Unknown submission: {submission_id}")
            updated = current.with_status(status, rejection_reason)
            self.kv.put(SUBMISSIONS_KEY, self._dump(self._replace_submission(submissions, updated)))
        logger.info(f"Submission {submission_id} marked {status}")
        return updated

    def approve_and_publish(self, submission_id: str, item: PublishedItem) -> Submission:
        """
        Approve a pending submission and publish its item in one atomic write.

        Either both collections change or neither does.
        """
        with self._lock:
            submissions = self.get_submissions()
            current = next((s for s in submissions if s.id == submission_id), None)
            if current is None:
                raise KeyError(f"Unknown submission: {submission_id}")
            updated = current.with_status(STATUS_APPROVED)
            submissions = self._replace_submission(submissions, updated)
            published = [item] + self.get_published()
            self.kv.put_many({
                SUBMISSIONS_KEY: self._dump(submissions),
                PUBLISHED_NEWS_KEY: self._dump(published),
            })
        logger.info(f"Published item {item.id} from submission {submission_id}")
        return updated

    # -- published feed ------------------------------------------------------

    def get_published(self, city: Optional[str] = None,
                      category: Optional[str] = None) -> List[PublishedItem]:
        """
        Published items, newest first.

        city matches case-insensitively as a substring; category exactly.
        """
        items = self._load(PUBLISHED_NEWS_KEY, PublishedItem)
        if city and city.strip():
            needle = city.strip().lower()
            items = [item for item in items if needle in item.city.lower()]
        if category:
            items = [item for item in items if item.category == category]
        return items

    # -- bookmarks -----------------------------------------------------------

    def get_bookmarks(self, owner_id: str) -> List[str]:
        return [str(item_id) for item_id in self.kv.get(bookmarks_key(owner_id))]

    def toggle_bookmark(self, owner_id: str, item_id: str) -> bool:
        """Add or remove a bookmark. Returns the new bookmarked state."""
        with self._lock:
            bookmarks = self.get_bookmarks(owner_id)
            if item_id in bookmarks:
                bookmarks = [b for b in bookmarks if b != item_id]
                is_bookmarked = False
            else:
                bookmarks.append(item_id)
                is_bookmarked = True
            self.kv.put(bookmarks_key(owner_id), bookmarks)
        return is_bookmarked

    def get_bookmarked_items(self, owner_id: str) -> List[PublishedItem]:
        bookmarks = set(self.get_bookmarks(owner_id))
        return [item for item in self.get_published() if item.id in bookmarks]

    # -- maintenance ---------------------------------------------------------

    def clear_all(self) -> None:
        with self._lock:
            keys = [SUBMISSIONS_KEY, PUBLISHED_NEWS_KEY] + self.kv.keys(f"{BOOKMARKS_KEY_PREFIX}:")
            self.kv.delete(keys)
        logger.warning("Cleared all submissions, published news and bookmarks")
