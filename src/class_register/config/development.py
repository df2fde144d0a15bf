import os

# "local" keeps everything in one JSON file; "mysql" uses DB_CONFIG.
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")
DATA_FILE = os.getenv("DATA_FILE", "data/class_register.json")
BACKUP_DIR = os.getenv("BACKUP_DIR", "backups")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "class_register"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Start the autosave/auto-backup scheduler with the app
AUTO_BACKUP = bool(int(os.getenv("AUTO_BACKUP", "1")))
