"""
Shared constants for the news module.
"""

NEWS_CATEGORIES = [
    'Accident', 'Festival', 'Community Event', 'Sports', 'Education',
    'Business', 'Politics', 'Weather', 'Other'
]

STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_REJECTED = 'rejected'
SUBMISSION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

# Durable store collection keys
SUBMISSIONS_KEY = 'news_submissions'
PUBLISHED_NEWS_KEY = 'published_news'
BOOKMARKS_KEY_PREFIX = 'bookmarked_news'
DEVICE_ID_KEY = 'device_identity'

# Rule-based moderation keyword sets (matched as substrings of the
# lower-cased "title description" text)
SPAM_KEYWORDS = [
    'buy now', 'click here', 'free money', 'scam', 'fake news',
    'advertisement', 'promote', 'sale', 'discount', 'offer',
]
INAPPROPRIATE_KEYWORDS = ['hate', 'violence', 'harassment', 'explicit']
NON_LOCAL_KEYWORDS = [
    'national', 'international', 'worldwide', 'global', 'federal government',
    'president', 'congress', 'senate', 'foreign country',
]

MIN_DESCRIPTION_LENGTH = 50
MIN_TITLE_LENGTH = 10
MAX_TITLE_LENGTH = 80
MAX_SUMMARY_LENGTH = 150
MAX_SUMMARY_SENTENCES = 3
ELLIPSIS = '...'

REASON_SPAM = "Content appears to be spam or commercial advertisement, not suitable for local news."
REASON_INAPPROPRIATE = (
    "Content contains inappropriate or harmful material that violates our community guidelines."
)
REASON_NOT_LOCAL = "Content appears to be about national/international news rather than local happenings."
REASON_TOO_SHORT = "Description is too short. Please provide more details about the local event."
REASON_TITLE_TOO_BRIEF = "Title is too brief. Please provide a more descriptive title for the news event."
REASON_DEFAULT = "Your submission did not meet our guidelines. Please review and try again."

# Analytics
TOP_GROUPS_LIMIT = 5
RECENT_ACTIVITY_DAYS = 7
LAST_WEEK_DAYS = 7
LAST_MONTH_DAYS = 30
