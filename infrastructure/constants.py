"""
Constants Module - Centralized fixed values
===========================================

Values that are part of the wire or storage formats and therefore are not
exposed as configuration.
"""

# Poll
POLL_OPTION_YES = '✅'
POLL_OPTION_NO = '❌'
POLL_OPTIONS = (POLL_OPTION_YES, POLL_OPTION_NO)

# Wizard keyboards
CHECK_MARK = '✅'
TIME_BUTTONS_PER_ROW = 2
MAX_CALLBACK_DATA_BYTES = 64

# Durable key-value store prefixes
POLL_KEY_PREFIX = 'POLL_'
EMAIL_KEY_PREFIX = 'EMAIL_'
PULL_OFFSET_KEY = 'PULL_OFFSET'

# Pull-mode update intake
PULL_UPDATES_LIMIT = 100
PULL_UPDATES_TIMEOUT = 5

# Calendar
CALENDAR_API_BASE = 'https://www.googleapis.com/calendar/v3'
CALENDAR_HTTP_TIMEOUT_SECONDS = 30.0
CALENDAR_PAGE_SIZE = 250
SOURCE_EVENT_PROPERTY = 'sourceEventId'
USER_BOOKINGS_LOOKAHEAD_DAYS = 7

# Scheduler
SCHEDULER_LOCK_NAME = 'scheduler'

# Telegram
WEBHOOK_SECRET_HEADER = 'X-Telegram-Bot-Api-Secret-Token'
TELEGRAM_PROFILE_URL = 'https://t.me/{username}'
