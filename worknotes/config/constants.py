"""
Application constants
"""

# Local storage
STORAGE_KEY = "smart-todo-tasks"

# Encryption
ENCRYPTION_PREFIX = "ENCRYPTED:"

# Supabase tables and functions
TASKS_TABLE = "tasks"
PROFILES_TABLE = "profiles"
DELETE_USER_FUNCTION = "delete_user"

# Remote persistence
BATCH_SIZE = 50  # Rows per insert request

# Task defaults
PRIORITIES = ("none", "low", "medium", "high")
DEFAULT_PRIORITY = "medium"

# Undo history
MAX_HISTORY_SIZE = 100

# Retry configuration
MAX_RETRIES = 3
RETRY_DELAY = 1  # seconds

# Markdown
MARKDOWN_EXTENSION = ".md"
MARKDOWN_MEDIA_TYPE = "text/markdown"

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
