"""Service configuration utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_data_dir() -> Path:
    """Return the working-directory data folder used when nothing is configured."""

    return Path.cwd() / "intake_data"


class ServiceSettings(BaseModel):
    """Runtime configuration for the intake service."""

    ENV_PREFIX: ClassVar[str] = "INTAKE_"
    ENV_FILE: ClassVar[str | None] = ".env"
    ENV_FILE_ENCODING: ClassVar[str] = "utf-8"

    model_config: ClassVar[ConfigDict] = cast(
        ConfigDict,
        {
            "extra": "ignore",
            "env_prefix": ENV_PREFIX,
        },
    )

    data_dir: Path = Field(
        default_factory=_default_data_dir,
        description="Directory holding saved progress, the record ledger and exports.",
    )
    export_on_submit: bool = Field(
        default=True,
        description="Export and sync the full ledger after every accepted submission.",
    )
    artifact_basename: str = Field(
        default="peddlewest_assessments",
        min_length=1,
        description="File name stem for locally delivered spreadsheet artifacts.",
    )
    sheet_name: str = Field(
        default="Responses",
        min_length=1,
        max_length=31,
        description="Worksheet title used inside exported workbooks.",
    )
    remote_upload_enabled: bool = Field(
        default=True,
        description="Attempt best-effort remote delivery after the local copy is written.",
    )
    credential_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Maximum time to wait for a remote credential before falling back to local-only.",
    )
    upload_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Maximum duration allowed for the remote upload request.",
    )
    remote_circuit_failure_threshold: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Consecutive remote delivery failures before remote attempts are skipped.",
    )
    remote_circuit_reset_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="Seconds before a tripped remote circuit allows a new attempt.",
    )

    @field_validator("data_dir")
    @classmethod
    def _ensure_data_dir(cls, value: Path) -> Path:
        """Create the data directory when missing and reject unusable paths."""

        if value.exists() and not value.is_dir():
            raise ValueError(f"Data directory is not a directory: {value}")
        try:
            value.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ValueError(f"Data directory cannot be created: {value} ({exc})") from exc
        return value

    @field_validator("artifact_basename")
    @classmethod
    def _validate_basename(cls, value: str) -> str:
        if any(separator in value for separator in ("/", "\\")):
            raise ValueError("artifact_basename may not contain path separators")
        return value.strip()

    @staticmethod
    def _parse_env_file(path: Path, encoding: str) -> dict[str, str]:
        """Parse an environment file supporting `export` and quoted values."""

        parsed: dict[str, str] = {}

        for raw_line in path.read_text(encoding=encoding).splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].strip()

            if "=" not in line:
                continue

            key, raw_value = line.split("=", 1)
            key = key.strip()
            value = raw_value.strip()

            if value and value[0] == value[-1] and value[0] in {'"', "'"}:
                value = value[1:-1]

            parsed[key] = value

        return parsed

    @classmethod
    def from_environment(cls) -> "ServiceSettings":
        """Load settings from environment variables or a `.env` file."""

        env_prefix = cls.ENV_PREFIX
        env_file_name = cls.ENV_FILE
        env_encoding = cls.ENV_FILE_ENCODING

        file_values: dict[str, str] = {}
        if env_file_name:
            env_file_path = Path(env_file_name)
            if not env_file_path.is_absolute():
                env_file_path = Path.cwd() / env_file_path
            if env_file_path.exists():
                file_values = cls._parse_env_file(env_file_path, env_encoding)

        overrides: dict[str, str] = {}
        for field_name in cls.model_fields:
            env_key = f"{env_prefix}{field_name.upper()}"
            if env_key in os.environ:
                overrides[field_name] = os.environ[env_key]
            elif env_key in file_values:
                overrides[field_name] = file_values[env_key]

        typed_overrides = cast(dict[str, Any], overrides)
        return cls(**typed_overrides)

    @property
    def storage_dir(self) -> Path:
        """Directory backing the key-value slots for progress and the ledger."""

        return self.data_dir / "storage"

    @property
    def exports_dir(self) -> Path:
        """Directory receiving locally delivered spreadsheet artifacts."""

        return self.data_dir / "exports"

    @property
    def diagnostics_root(self) -> Path:
        """Root passed to the diagnostics logger."""

        return self.data_dir


__all__: list[str] = ["ServiceSettings"]
