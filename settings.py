"""Environment-driven settings."""
import os

DEFAULT_DATABASE_URL = "mongodb://localhost:27017"
DEFAULT_DATABASE_NAME = "rovel"
DEFAULT_LOG_LEVEL = "INFO"


def database_url() -> str:
    return os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def database_name() -> str:
    return os.getenv("DATABASE_NAME") or DEFAULT_DATABASE_NAME


def port() -> int:
    return int(os.getenv("PORT", 8000))


def seed_data_dir() -> str:
    return os.getenv("SEED_DATA_DIR", "data")


def log_level_name() -> str:
    return os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()


def work_id_attempts() -> int:
    # Retries for id assignment when a concurrent create wins the same id
    return max(1, int(os.getenv("WORK_ID_ATTEMPTS", 3)))
