from pydantic_settings import BaseSettings
from typing import List, Optional
from pathlib import Path

# Get the project directory (parent of the bookshare package)
PROJECT_DIR = Path(__file__).parent.parent
ENV_FILE = PROJECT_DIR / ".env"

class Settings(BaseSettings):
    # Server settings (non-confidential, can have defaults)
    host: str = "0.0.0.0"
    port: int = 3000

    # Database settings - SQLite by default, any SQLAlchemy URL with partial index support works
    database_url: str = "sqlite:///./bookshare.db"
    db_echo: bool = False
    db_busy_timeout: int = 30  # Seconds a SQLite writer waits for the lock

    # Telegram settings - confidential values from .env
    bot_token: str  # Required from .env (confidential - no default)
    admin_group_id: str = ""  # Chat id of the admin group, empty disables admin access
    init_data_expires_in: int = 3600  # Freshness window for signed init data, in seconds
    telegram_api_url: str = "https://api.telegram.org"
    telegram_timeout: float = 5.0
    miniapp_url: str = ""  # e.g. https://t.me/<bot>/<app>, used for admin deep links
    webhook_secret: Optional[str] = None  # Checked against X-Telegram-Bot-Api-Secret-Token

    # Lending rules
    loan_period_days: int = 14
    search_limit: int = 10
    search_max_limit: int = 50

    # Reference data inserted at startup when missing
    default_locations: List[str] = ["Saga", "Elm", "Cendana"]

    class Config:
        env_file = str(ENV_FILE) if ENV_FILE.exists() else ".env"
        case_sensitive = False

settings = Settings()
