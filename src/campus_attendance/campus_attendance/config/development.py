import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "campus_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Apply database/schema.sql on startup (CREATE ... IF NOT EXISTS, safe to repeat)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Also load database/seed.sql and the demo users/enrollments
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Percentage strictly below this raises a low-attendance alert
LOW_ATTENDANCE_THRESHOLD = os.getenv("LOW_ATTENDANCE_THRESHOLD", "75.00")
# Optimistic-lock retries when an approval races a re-mark
REVIEW_MAX_RETRIES = int(os.getenv("REVIEW_MAX_RETRIES", "3"))
