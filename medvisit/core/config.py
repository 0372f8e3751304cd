from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = False
    auto_create_tables: bool = False

    # JWT
    secret_key: str
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"
    bcrypt_rounds: int = 12

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Env
    env: str = "development"

    # Scheduling rules
    clinic_timezone: str = "UTC"
    base_slot_minutes: int = 30  # reservation unit, independent of a rule's slot_minutes
    max_duration_slots: int = 24
    default_grid_slot_minutes: int = 30
    min_grid_slot_minutes: int = 10
    max_grid_slot_minutes: int = 60

    # Absence handling
    absence_cancel_reason: str = "Doctor reported an absence"
    absence_notification_reason: str = "The doctor cancelled the visit due to an absence."

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
