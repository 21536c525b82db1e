import secrets
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_path: Path = Path.home() / "SubmissionIntake"
    storage_namespace: str = "uploads"
    signed_url_expires_sec: int = 60 * 60
    # Unset secret means URLs only verify within the issuing process.
    signing_secret: str = Field(default_factory=lambda: secrets.token_hex(32))
    public_base_url: str = "http://127.0.0.1:8000"
    max_upload_bytes: int = 25 * 1024 * 1024  # 25 MiB per file
    upload_workers: int = 4
    timestamp_storage_paths: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    @property
    def db_path(self) -> Path:
        return self.data_path / "db.sqlite"

    @property
    def objects_dir(self) -> Path:
        return self.data_path / "objects"

    @property
    def staging_dir(self) -> Path:
        return self.data_path / "tmp"

    model_config = {"env_prefix": "INTAKE_"}


settings = Settings()
