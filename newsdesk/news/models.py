"""
News domain records.

Submissions and published items are plain dataclasses serialized to the
camelCase JSON shape kept in the durable store.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Optional, Union

from newsdesk.lib.time import parse_iso, to_iso
from newsdesk.news.constants import (
    NEWS_CATEGORIES, SUBMISSION_STATUSES, STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED
)


def _check_category(category: str) -> str:
    if category not in NEWS_CATEGORIES:
        raise ValueError(f"Unknown news category: {category!r}")
    return category


@dataclass(frozen=True)
class Submission:
    id: str
    title: str
    description: str
    city: str
    category: str
    publisher_name: str
    publisher_phone: str
    submitted_at: datetime
    status: str = STATUS_PENDING
    image_uri: Optional[str] = None
    rejection_reason: Optional[str] = None

    def with_status(self, status: str, rejection_reason: Optional[str] = None) -> 'Submission':
        if status not in SUBMISSION_STATUSES:
            raise ValueError(f"Unknown submission status: {status!r}")
        return replace(self, status=status, rejection_reason=rejection_reason)

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'city': self.city,
            'category': self.category,
            'publisherName': self.publisher_name,
            'publisherPhone': self.publisher_phone,
            'submittedAt': to_iso(self.submitted_at),
            'status': self.status,
        }
        if self.image_uri:
            data['imageUri'] = self.image_uri
        if self.rejection_reason:
            data['rejectionReason'] = self.rejection_reason
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Submission':
        status = data.get('status', STATUS_PENDING)
        if status not in SUBMISSION_STATUSES:
            raise ValueError(f"Unknown submission status: {status!r}")
        return cls(
            id=data['id'],
            title=data['title'],
            description=data['description'],
            city=data['city'],
            category=_check_category(data['category']),
            publisher_name=data['publisherName'],
            publisher_phone=data['publisherPhone'],
            submitted_at=parse_iso(data['submittedAt']),
            status=status,
            image_uri=data.get('imageUri'),
            rejection_reason=data.get('rejectionReason'),
        )


@dataclass(frozen=True)
class PublishedItem:
    id: str
    original_submission_id: str
    edited_title: str
    edited_summary: str
    city: str
    category: str
    publisher_name: str
    masked_phone: str
    published_at: datetime
    image_uri: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'originalSubmissionId': self.original_submission_id,
            'editedTitle': self.edited_title,
            'editedSummary': self.edited_summary,
            'city': self.city,
            'category': self.category,
            'publisherName': self.publisher_name,
            'maskedPhone': self.masked_phone,
            'publishedAt': to_iso(self.published_at),
        }
        if self.image_uri:
            data['imageUri'] = self.image_uri
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'PublishedItem':
        return cls(
            id=data['id'],
            original_submission_id=data['originalSubmissionId'],
            edited_title=data['editedTitle'],
            edited_summary=data['editedSummary'],
            city=data['city'],
            category=_check_category(data['category']),
            publisher_name=data['publisherName'],
            masked_phone=data['maskedPhone'],
            published_at=parse_iso(data['publishedAt']),
            image_uri=data.get('imageUri'),
        )


@dataclass(frozen=True)
class ModerationCandidate:
    """The editorial fields a moderation policy may see. Never any PII."""
    title: str
    description: str
    city: str
    category: str

    @classmethod
    def from_submission(cls, submission: Submission) -> 'ModerationCandidate':
        return cls(
            title=submission.title,
            description=submission.description,
            city=submission.city,
            category=submission.category,
        )


@dataclass(frozen=True)
class Accepted:
    edited_title: str
    edited_summary: str
    status = STATUS_APPROVED


@dataclass(frozen=True)
class Rejected:
    reason: str
    status = STATUS_REJECTED


Decision = Union[Accepted, Rejected]


@dataclass(frozen=True)
class PublicationOutcome:
    """Result of PublicationPipeline.submit(): a published item or a rejection."""
    submission: Submission
    item: Optional[PublishedItem] = None
    rejection_reason: Optional[str] = None

    @property
    def published(self) -> bool:
        return self.item is not None

    def to_dict(self) -> Dict:
        if self.published:
            return {'status': STATUS_APPROVED, 'item': self.item.to_dict()}
        return {
            'status': STATUS_REJECTED,
            'submissionId': self.submission.id,
            'reason': self.rejection_reason,
        }
