from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import logging
from functools import lru_cache


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment and the token file.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    TOKEN_STORAGE_FILE: str = ".gdrive.token"

    # --- General Settings ---
    LOG_LEVEL: str = "INFO"
    LAYOUT_FILE: str = ".gdrive.layout.json"

    # --- Google Drive Settings ---
    GDRIVE_CLIENT_ID: str
    GDRIVE_CLIENT_SECRET: str
    GDRIVE_REFRESH_TOKEN: Optional[str] = None
    GDRIVE_ROOT_PATH: str

    # --- Constants and Computed Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent

    @model_validator(mode='before')
    @classmethod
    def validate_gdrive_settings(cls, values):
        for key in ["GDRIVE_CLIENT_ID", "GDRIVE_CLIENT_SECRET", "GDRIVE_ROOT_PATH"]:
            if not values.get(key) or not str(values.get(key)).strip():
                raise ValueError(f"{key} is required and cannot be empty")

        if not values.get("GDRIVE_REFRESH_TOKEN"):
            # model_post_init falls back to the token file.
            logging.warning("GDRIVE_REFRESH_TOKEN not found in environment. Will attempt to load from .gdrive.token file.")
        return values

    def model_post_init(self, __context):
        """
        After initial settings are loaded from the environment,
        try to load a refresh token from the local token file as a fallback.
        """
        if self.GDRIVE_REFRESH_TOKEN:
            return
        if self.TOKEN_FILE.is_file():
            content = self.TOKEN_FILE.read_text().strip()
            if content:
                self.GDRIVE_REFRESH_TOKEN = content
                logging.info(f"Found refresh token in file: {self.TOKEN_FILE}")

    @property
    def TOKEN_FILE(self) -> Path:
        return self.BASE_DIR / self.TOKEN_STORAGE_FILE

    @property
    def LAYOUT_PATH(self) -> Path:
        return self.BASE_DIR / self.LAYOUT_FILE

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
