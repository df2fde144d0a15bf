import os

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")
# Empty: in-memory store, nothing written to disk.
DATA_FILE = os.getenv("DATA_FILE", "")
BACKUP_DIR = os.getenv("BACKUP_DIR", "test_backups")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "class_register_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_BACKUP = bool(int(os.getenv("AUTO_BACKUP", "0")))
