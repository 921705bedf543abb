# backend/funnel_store/core/config.py
import os
from dotenv import load_dotenv

# Loads backend/.env, relative to this package.
env_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), '..', '.env')
load_dotenv(dotenv_path=env_path)


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


class Settings:
    """
    Application settings read from environment variables.
    No Pydantic here: types and defaults are converted by hand.
    """

    # Row store location. Only sqlite:/// URLs are supported.
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./funnel_store.db")

    # SMTP
    SMTP_SERVER: str = os.getenv("SMTP_SERVER", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", 465))

    # Sender pool, "email|password,email|password". Optional: without it the
    # store still works but notifications and sendEmail are disabled.
    SENDER_ACCOUNTS: list[dict] = [
        {"email": acc.split('|')[0], "password": acc.split('|')[1]}
        for acc in _split_csv(os.getenv("SENDER_ACCOUNTS", ""))
        if '|' in acc
    ]

    # Who hears about signups and deletions.
    NOTIFICATION_EMAILS: list[str] = _split_csv(os.getenv("NOTIFICATION_EMAILS", ""))
    NOTIFICATION_SUBJECT: str = os.getenv("NOTIFICATION_SUBJECT", "New Newsletter Signup")
    DELETE_SUBJECT: str = os.getenv("DELETE_SUBJECT", "Subscriber Deleted")
    NOTIFICATION_TIMEZONE: str = os.getenv("NOTIFICATION_TIMEZONE", "America/New_York")

    FROM_NAME: str = os.getenv("FROM_NAME", "Signup Funnel")
    DEFAULT_SOURCE: str = os.getenv("DEFAULT_SOURCE", "Landing Page")

    # Delete-by-timestamp matching window, in seconds.
    DELETE_TOLERANCE_SECONDS: int = int(os.getenv("DELETE_TOLERANCE_SECONDS", 60))


settings = Settings()
