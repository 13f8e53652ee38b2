"""Pydantic settings for the optional remote (Google Drive) delivery path."""

from __future__ import annotations

from functools import lru_cache
from typing import ClassVar, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"
DEFAULT_TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files?uploadType=multipart"


class RemoteSettings(BaseSettings):
    """OAuth client and endpoint configuration for remote artifact uploads."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    client_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "PEDDLEWEST_GOOGLE_CLIENT_ID",
            "GOOGLE_CLIENT_ID",
        ),
    )
    client_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "PEDDLEWEST_GOOGLE_CLIENT_SECRET",
            "GOOGLE_CLIENT_SECRET",
        ),
    )
    refresh_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "PEDDLEWEST_GOOGLE_REFRESH_TOKEN",
            "GOOGLE_REFRESH_TOKEN",
        ),
    )
    scope: str = Field(
        default=DRIVE_FILE_SCOPE,
        validation_alias=AliasChoices("PEDDLEWEST_GOOGLE_SCOPE", "GOOGLE_SCOPE"),
    )
    token_url: str = Field(
        default=DEFAULT_TOKEN_URL,
        validation_alias=AliasChoices("PEDDLEWEST_GOOGLE_TOKEN_URL"),
    )
    upload_url: str = Field(
        default=DEFAULT_UPLOAD_URL,
        validation_alias=AliasChoices("PEDDLEWEST_GOOGLE_UPLOAD_URL"),
    )
    remote_filename: str = Field(
        default="peddlewest_assessments.xlsx",
        validation_alias=AliasChoices("PEDDLEWEST_REMOTE_FILENAME"),
    )

    @field_validator("client_id", "client_secret", "refresh_token", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        """Treat blank strings from `.env` templates as unset."""

        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_connected(self) -> bool:
        """Return True when enough material exists to request an access token."""

        return bool(self.client_id and self.refresh_token)


@lru_cache(maxsize=1)
def get_remote_settings() -> RemoteSettings:
    """Return a cached remote settings instance."""

    return RemoteSettings()


__all__ = [
    "DEFAULT_TOKEN_URL",
    "DEFAULT_UPLOAD_URL",
    "DRIVE_FILE_SCOPE",
    "RemoteSettings",
    "get_remote_settings",
]
