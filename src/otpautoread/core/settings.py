"""Runtime settings loader."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from otpautoread.extraction.extractor import (
    DEFAULT_CODE_LENGTH,
    MAX_CODE_LENGTH,
    MIN_CODE_LENGTH,
    ExtractorConfig,
)
from otpautoread.utils.env import get_float_env, get_int_env


SMS_TIMEOUT_SECONDS = 300.0


class ExtractorSettings(BaseModel):
    expected_length: int = Field(default=DEFAULT_CODE_LENGTH, ge=MIN_CODE_LENGTH, le=MAX_CODE_LENGTH)

    def to_config(self) -> ExtractorConfig:
        return ExtractorConfig(expected_length=self.expected_length)


class RetrieverSettings(BaseModel):
    """Listening window for one SMS capture."""

    timeout_seconds: float = Field(default=SMS_TIMEOUT_SECONDS, gt=0)


class AppIdentitySettings(BaseModel):
    package_name: Optional[str] = None
    signature: Optional[str] = None  # hex or base64 signing certificate, used only for the app hash


class RuntimeSettings(BaseModel):
    extractor: ExtractorSettings = Field(default_factory=ExtractorSettings)
    retriever: RetrieverSettings = Field(default_factory=RetrieverSettings)
    app: AppIdentitySettings = Field(default_factory=AppIdentitySettings)
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, path: Path) -> "RuntimeSettings":
        data = yaml.safe_load(path.read_text()) or {}
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: dict) -> "RuntimeSettings":
        try:
            settings = cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid runtime settings: {exc}") from exc
        return settings.with_env_overrides()

    def with_env_overrides(self) -> "RuntimeSettings":
        """Apply OTPAUTOREAD_* environment variables on top of file values."""
        length = get_int_env("OTPAUTOREAD_EXPECTED_LENGTH")
        timeout = get_float_env("OTPAUTOREAD_SMS_TIMEOUT")
        data = self.model_dump()
        if length is not None:
            data["extractor"]["expected_length"] = length
        if timeout is not None:
            data["retriever"]["timeout_seconds"] = timeout
        try:
            return type(self).model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid runtime settings override: {exc}") from exc
