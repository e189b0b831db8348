"""Schema of the JSON/TOML configuration document."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _CaseInsensitiveModel(BaseModel):
    """Accept keys in any letter case (``Source``, ``SOURCE`` and ``source``)."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _lowercase_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k.lower() if isinstance(k, str) else k: v for k, v in data.items()}
        return data


class MappingEntry(_CaseInsensitiveModel):
    """One ``mappings`` entry as written in the file, before env expansion."""

    source: str = Field(min_length=1)
    target: str = Field(min_length=1)
    exclusions: list[str] = Field(default_factory=list)

    @field_validator("exclusions", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class SettingsSection(_CaseInsensitiveModel):
    """The ``settings`` section."""

    interval: str = Field(min_length=1)
    rsync_args: list[str] = Field(default_factory=list)

    @field_validator("rsync_args", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class ConfigDocument(_CaseInsensitiveModel):
    """Top-level configuration document."""

    settings: SettingsSection
    mappings: list[MappingEntry] = Field(min_length=1)
