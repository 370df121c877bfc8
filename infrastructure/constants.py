"""
Constants Module - Centralized configuration values
===================================================

PURPOSE: Single source of truth for the offline booking queue defaults
PATTERN: Constants grouped by category
SCOPE: Queue storage, retry schedule and user-facing messages
"""

# Storage
DEFAULT_QUEUE_FILE = 'data/offline_queue.json'
QUEUE_ID_PREFIX = 'offline'
DEFAULT_LOG_DIRECTORY = 'logs/latest_log'

# Retry schedule (exponential backoff, doubling per attempt, capped)
MAX_SYNC_ATTEMPTS = 5
INITIAL_RETRY_DELAY_SECONDS = 2.0
MAX_RETRY_DELAY_SECONDS = 300.0

# Date/time formats accepted in booking payloads
BOOKING_DATE_FORMAT = '%Y-%m-%d'

# Messages
REMOTE_CONFLICT_MESSAGE = (
    'This time slot is no longer available. '
    'Another booking was created while you were offline.'
)
INTERRUPTED_SYNC_MESSAGE = 'Sync interrupted before completion'
