from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./prequel.db"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # Read PREQUEL_* variables from the environment or the .env file
    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="PREQUEL_", extra="ignore"
    )


# Create a single instance of the settings to use everywhere
settings = Settings()
