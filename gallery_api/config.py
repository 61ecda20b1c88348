import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)
    cors_origin: str = Field(default="*", description="Allowed CORS origin")
    admin_token: str | None = Field(default=None, description="X-Admin-Token for delete and manual save")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Storage
    uploads_dir: str = Field(default="uploads")
    static_dir: str = Field(default="public")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)
    max_files_per_upload: int = Field(default=20)

    # Git auto-save
    autosave_enabled: bool = Field(default=True)
    git_repo_dir: str = Field(default=".")
    git_remote: str = Field(default="origin")
    git_branch: str = Field(default="main")
    git_timeout_seconds: float | None = Field(default=None)
    min_commit_interval_seconds: float = Field(default=120)
    autosave_interval_minutes: float = Field(default=2)
    autosave_warmup_seconds: float = Field(default=5)
    upload_save_delay_seconds: float = Field(default=10)

    @property
    def is_production(self) -> bool:
        # Render and Railway hosts have ephemeral disks
        return (
            self.environment.lower() == "production"
            or bool(os.getenv("RENDER"))
            or bool(os.getenv("RAILWAY_ENVIRONMENT"))
        )

    @property
    def autosave_active(self) -> bool:
        return self.autosave_enabled and not self.is_production


settings = Settings()
