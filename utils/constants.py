APP_NAME = "Recur Ledger"
DB_FILE = "recur_ledger.db"

DATE_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

LAST_DAY_OF_MONTH = 32          # day_of_month sentinel, resolved per month
WEEKDAY_SCAN_LIMIT = 8          # days searched forward for a matching weekday
UPCOMING_DAYS = 7
MIN_GENERATION_INTERVAL_MINUTES = 60

LAST_GENERATION_SETTING = "last_generation_at"

FREQUENCIES = ["daily", "weekly", "monthly", "yearly", "custom"]
ITEM_KINDS = ["expense", "income"]
DAYS_OF_WEEK = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
