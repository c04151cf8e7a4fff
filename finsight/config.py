import os

# SQLAlchemy URL of the ledger database.
DATABASE_URL = os.getenv("FINSIGHT_DATABASE_URL", "sqlite:///finsight.db")

LOG_LEVEL = os.getenv("FINSIGHT_LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("FINSIGHT_LOG_DIR")

# Span (in days) of a report window when the caller gives no explicit range.
DEFAULT_WINDOW_DAYS = int(os.getenv("FINSIGHT_DEFAULT_WINDOW_DAYS", "30"))

# Bearer token required on every API request when set.
API_TOKEN = os.getenv("FINSIGHT_API_TOKEN")
