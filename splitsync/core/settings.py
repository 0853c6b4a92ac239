from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Process configuration, read from ``SPLITSYNC_*`` environment variables
    (or a local ``.env`` file).
    """

    model_config = SettingsConfigDict(env_prefix="SPLITSYNC_", env_file=".env", extra="ignore")

    # Remote split-testing authority
    API_URL: str = "http://localhost:3000"
    API_TOKEN: str | None = None
    # Every remote call is bounded by this timeout (seconds)
    REMOTE_TIMEOUT_SECONDS: float = 2.0

    # Deferred job outbox
    JOB_DATABASE_URL: str = "sqlite:///./splitsync_jobs.db"

    # Bearer tokens accepted by the fake remote authority; empty disables auth
    TOKENS: list[str] = []

    LOG_LEVEL: str = "INFO"
    LOG_PRETTY: bool = False


config_settings = Settings()
