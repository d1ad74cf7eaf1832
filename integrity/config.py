from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/integrity"
    default_tz: str = "UTC"  # Date keys are local calendar dates in this zone
    api_key: str | None = Field(default=None, validation_alias="INTEGRITY_API_KEY")

    # Persistence backend for goals/progress/xp: "memory" | "file" | "sql"
    storage_backend: str = "memory"
    data_path: str = "integrity_data.json"  # JSON blob used by the "file" backend
    profile_id: str = "default"  # Row scoping for the "sql" backend

    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
