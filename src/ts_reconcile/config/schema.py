"""Configuration schema for ts-reconcile using nested Pydantic models."""

import re
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..catalog.locations import LocationsMode
from ..catalog.store import DuplicatePolicy

_LANGUAGE_TAG = re.compile(r"^([A-Za-z]{2,3})(?:[-_]([A-Za-z]{2}|[0-9]{3}))?$")


def normalize_language_tag(tag: str) -> str:
    """
    Normalize a language tag to Qt's form, e.g. "nl-nl" -> "nl_NL".

    Raises:
        ValueError: If the tag is not a language with an optional territory
    """
    match = _LANGUAGE_TAG.match(tag.strip())
    if match is None:
        raise ValueError(f"Invalid language tag: {tag!r}")
    language, territory = match.groups()
    if territory is None:
        return language.lower()
    return f"{language.lower()}_{territory.upper()}"


class CatalogConfig(BaseModel):
    """How catalogs are read and written."""

    locations: LocationsMode = Field(
        default=LocationsMode.RELATIVE,
        description="Location output mode: relative, absolute or none",
    )
    duplicate_policy: DuplicatePolicy = Field(
        default=DuplicatePolicy.REJECT,
        description="Handling of duplicate keys on load: reject, merge or keep",
    )
    sort_contexts: bool = Field(
        default=False,
        description="Order contexts by name instead of by scan order",
    )
    source_language: str | None = Field(
        default=None,
        description="Source language written to new catalogs (e.g. en_US)",
    )

    @field_validator("source_language")
    @classmethod
    def validate_source_language(cls, v: str | None) -> str | None:
        """Validate and normalize the source language tag."""
        if v is None:
            return None
        return normalize_language_tag(v)


class ReconcileConfig(BaseModel):
    """Reconciliation policy."""

    prune_vanished_after: Annotated[int, Field(ge=1)] | None = Field(
        default=None,
        description="Drop vanished messages after this many passes, or never",
    )
    prune_obsolete: bool = Field(
        default=False,
        description="Drop all obsolete and vanished messages on every pass",
    )
    strict_monotonic_locations: bool = Field(
        default=False,
        description="Report negative location deltas when loading catalogs",
    )
    max_workers: Annotated[int, Field(ge=1, le=64)] = Field(
        default=4,
        description="Catalogs reconciled in parallel by the batch command",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Console log level",
    )
    log_folder: str | None = Field(
        default=None,
        description="Folder for the rotating log file, or no file logging",
    )

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: object) -> object:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper()
        return v


class ReconcilerConfig(BaseModel):
    """
    Configuration model for ts-reconcile with nested structure.

    Every section is optional; an empty file yields the defaults.
    """

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config: ClassVar[ConfigDict] = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
        frozen=False,
    )
