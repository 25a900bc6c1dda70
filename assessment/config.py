from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()


class Settings(BaseSettings):
    """Runtime configuration. Every field can be overridden from the environment or .env."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./assessment.db"

    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    log_level: str = "INFO"
    log_dir: str = "logs"
    log_file: str = "assessment.log"

    # Day N+1 of the daily tests unlocks once day N has a scored attempt at or above this.
    daily_test_unlock_percentage: float = 90.0
    grandtest_cooldown_hours: int = 24
    essay_min_length: int = 10
    certificate_number_attempts: int = 5


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def reset_db():
    Base.metadata.drop_all(bind=engine)
    create_db()


def create_db():
    # Import for side effect: registers every table on Base.metadata.
    import assessment.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
