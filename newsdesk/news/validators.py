"""
Submission Intake Validators

Structural checks run before a submission is persisted. Editorial quality
(length, tone, locality) is left to the moderation policy.
"""

import logging
from typing import Dict, Optional, Tuple

from newsdesk.news.constants import NEWS_CATEGORIES
from newsdesk.news.errors import SubmissionValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    'title': "Title is required",
    'description': "Description is required",
    'city': "City is required",
    'publisher_name': "Publisher name is required",
    'publisher_phone': "Publisher phone is required",
}


def validate_category(category: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a news category against the closed set.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not category:
        return False, "Category is required"

    if category not in NEWS_CATEGORIES:
        return False, f"Category must be one of: {', '.join(NEWS_CATEGORIES)}"

    return True, None


def validate_submission_fields(fields: Dict) -> Dict:
    """
    Validate and normalize raw submission fields.

    Args:
        fields: Mapping with title, description, city, category,
                publisher_name, publisher_phone and optional image_uri

    Returns:
        dict of cleaned fields (strings coerced, image_uri None when blank)

    Raises:
        SubmissionValidationError: listing every failing field
    """
    errors = {}
    cleaned = {}

    for field, message in REQUIRED_FIELDS.items():
        value = fields.get(field)
        value = '' if value is None else str(value)
        if not value.strip():
            errors[field] = message
        cleaned[field] = value

    category = fields.get('category')
    is_valid, error = validate_category(category)
    if not is_valid:
        errors['category'] = error
    cleaned['category'] = category

    image_uri = fields.get('image_uri')
    cleaned['image_uri'] = str(image_uri) if image_uri else None

    if errors:
        logger.info(f"Submission intake rejected: {sorted(errors)}")
        raise SubmissionValidationError(errors)

    return cleaned
