import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "gatepass_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

# Tests run against the in-memory ledger, no database needed.
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")

GATE_PASS_SCOPE = "test"
PASS_NO_PREFIX = "GP"
PASS_NO_WIDTH = 8

EDIT_WHILE_OUT = True
LOCK_TIMEOUT_SECONDS = 2.0

AUTO_INIT_DB = False
AUTO_SEED_DB = False
