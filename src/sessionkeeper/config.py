from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API
    api_host: str = Field(default="0.0.0.0", alias="SK_API_HOST")  # noqa: S104
    api_port: int = Field(default=8080, alias="SK_API_PORT")

    # Docs
    docs_url: str | None = "/docs"
    redoc_url: str | None = "/redoc"

    # Sessions
    session_lifetime: int = Field(default=36 * 60 * 60, alias="SK_SESSION_LIFETIME")  # 36 hours
    cookie_name: str = Field(default="shelf_session_id", alias="SK_COOKIE_NAME")

    # Snapshots
    state_dir: str = Field(default="/var/lib/sessionkeeper", alias="SK_STATE_DIR")
    snapshot_path: str | None = Field(default=None, alias="SK_SNAPSHOT_PATH")
    checkpoint_interval: float = Field(default=0, alias="SK_CHECKPOINT_INTERVAL")  # 0 disables

    # Admin
    admin_enabled: bool = Field(default=False, alias="SK_ADMIN_ENABLED")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True

    @property
    def lifetime(self) -> timedelta:
        return timedelta(seconds=self.session_lifetime)


settings = Settings()


def ensure_directories() -> None:
    import os
    from contextlib import suppress

    paths = {settings.state_dir}
    if settings.snapshot_path:
        paths.add(os.path.dirname(os.path.abspath(settings.snapshot_path)))
    for path in paths:
        with suppress(OSError):
            os.makedirs(path, exist_ok=True)
