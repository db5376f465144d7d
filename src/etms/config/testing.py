import os

SECRET_KEY = "test-secret"
JWT_SECRET_KEY = "test-jwt-secret"
JWT_EXPIRES_DAYS = 7

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "etms_test"),
    "pool_size": 2,
    "connection_timeout": 30,
}

API_KEYS: list[str] = []

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

LATE_CUTOFF = "09:00"
STANDARD_WORK_HOURS = 8.0
MAX_PAGE_SIZE = 100

AUTO_INIT_DB = False
AUTO_SEED_DB = False
