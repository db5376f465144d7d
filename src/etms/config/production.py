import os

from . import split_csv

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "please-set-JWT_SECRET_KEY")
JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "etms_db"),
    "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
    "connection_timeout": int(os.getenv("DB_CONNECTION_TIMEOUT", "30")),
}

API_KEYS = split_csv(os.getenv("API_KEYS"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LATE_CUTOFF = os.getenv("LATE_CUTOFF", "09:00")
STANDARD_WORK_HOURS = float(os.getenv("STANDARD_WORK_HOURS", "8"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
