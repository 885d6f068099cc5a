"""
Phone masking for public display.

Published items only ever carry the masked form of a publisher's phone.
"""

MASK_CHAR = '*'
VISIBLE_PREFIX = 3
VISIBLE_SUFFIX = 2
MIN_MASKABLE_LENGTH = 5


def mask_phone(phone) -> str:
    """
    Redact the middle of a phone number.

    Keeps the first 3 and last 2 characters and replaces everything in
    between with '*'. Strings of 4 characters or fewer are returned as-is.
    Never raises: non-string input is coerced with str().

    >>> mask_phone('5551234567')
    '555*****67'
    """
    if phone is None:
        return ''
    phone = str(phone)
    if len(phone) < MIN_MASKABLE_LENGTH:
        return phone

    hidden = max(0, len(phone) - VISIBLE_PREFIX - VISIBLE_SUFFIX)
    return phone[:VISIBLE_PREFIX] + MASK_CHAR * hidden + phone[-VISIBLE_SUFFIX:]
