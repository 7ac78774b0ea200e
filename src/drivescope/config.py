from pathlib import Path
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment and the .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Google OAuth Settings (must be set in .env) ---
    GOOGLE_CLIENT_ID: str
    GOOGLE_CLIENT_SECRET: str
    OAUTH_REDIRECT_URI: str = "http://localhost:10000/oauth2callback"
    TOKEN_FILE: str = "tokens.json"

    # --- General Settings ---
    DRIVE_FOLDER_NAME: str = "Photo_Storage"
    LOG_LEVEL: str = "INFO"

    # --- Traversal Settings ---
    ANCESTRY_HOP_LIMIT: int = 30
    DEFAULT_LIST_DEPTH: int = 4
    LIST_PAGE_SIZE: int = 1000
    SEARCH_PAGE_SIZE: int = 100
    CONTENT_SEARCH_PAGE_SIZE: int = 1000
    ROOT_QUERY_PAGE_SIZE: int = 10
    MAX_CONCURRENT_FETCHES: int = 1

    # --- Policy Settings ---
    # Refuse to guess when several folders share DRIVE_FOLDER_NAME.
    STRICT_ROOT_RESOLUTION: bool = True
    # Emit a node reachable through two in-scope parents only once.
    DEDUPLICATE_LISTING: bool = True

    # --- Constants and Computed Paths ---
    # Relative TOKEN_FILE and the log file live next to .env, in the working directory.
    BASE_DIR: Path = Field(default_factory=Path.cwd)

    @model_validator(mode="after")
    def validate_drive_settings(self):
        for key in ["GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "DRIVE_FOLDER_NAME"]:
            if not str(getattr(self, key)).strip():
                raise ValueError(f"{key} is required and cannot be empty")

        positive_keys = [
            "ANCESTRY_HOP_LIMIT",
            "DEFAULT_LIST_DEPTH",
            "LIST_PAGE_SIZE",
            "SEARCH_PAGE_SIZE",
            "CONTENT_SEARCH_PAGE_SIZE",
            "ROOT_QUERY_PAGE_SIZE",
            "MAX_CONCURRENT_FETCHES",
        ]
        for key in positive_keys:
            if getattr(self, key) < 1:
                raise ValueError(f"{key} must be a positive integer")
        return self

    @property
    def TOKEN_PATH(self) -> Path:
        token_path = Path(self.TOKEN_FILE)
        if token_path.is_absolute():
            return token_path
        return self.BASE_DIR / token_path

    @property
    def LOG_FILE(self) -> Path:
        return self.BASE_DIR / "app.log"


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    return Settings()
