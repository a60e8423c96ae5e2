"""Configuration models for a localisation project.

LocsmithConfig

`master_table` (`str`)
: Name of the canonical master table. The first configured document always
  produces it; its identifier class holds the empty-string sentinel.

`first_language_column` (`int`)
: Zero-based spreadsheet column where foreign language columns start. The
  identifier lives in column 0 and the English text in column 1.

`ids_module` (`Path`)
: Destination of the generated identifier module.

`documents` (`list[DocumentConfig]`)
: Remote documents and the canonical table file each one exports to.

`languages` (`list[LanguageConfig]`)
: Declared languages with their import settings (culture, render mode,
  padding, font).

`fallback_fonts` (`list[FallbackFontConfig]`)
: Ordered fallback chain used for glyphs the primary atlases cannot hold.

`fetch` (`FetchConfig`)
: Credentials lookup and transport settings for the remote fetch.

`atlas` (`AtlasConfig`)
: Glyph atlas synthesis settings. Disabled by default.

Relative paths are resolved against the directory holding the configuration
file when it is loaded through :func:`load_config`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from slugify import slugify
import yaml

from locsmith.core.culture import is_valid_culture_id
from locsmith.core.exceptions import ConfigError
from locsmith.core.resolution import DEFAULT_MASTER_TABLE
from locsmith.core.tables import ENGLISH
from locsmith.fonts.types import ATLAS_SIZES, RenderMode
from locsmith.sheets.fetch import SHEETS_API_URL
from locsmith.sheets.parser import DEFAULT_FIRST_LANGUAGE_COLUMN


class DocumentConfig(BaseModel):
    """A remote spreadsheet and its canonical export path."""

    model_config = ConfigDict(extra="forbid")

    document_id: str = Field(min_length=1)
    canonical_path: Path
    name: str | None = Field(default=None, description="Table name override for satellites")


class LanguageConfig(BaseModel):
    """Per-language import record."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    culture_id: str = "en-US"
    render_mode: RenderMode = RenderMode.SMOOTH
    padding: int = Field(default=5, ge=0)
    font: Path | None = None
    min_font_size: int = Field(default=14, ge=1)

    @field_validator("culture_id")
    @classmethod
    def check_culture(cls, value: str) -> str:
        if not is_valid_culture_id(value):
            raise ValueError(f"Culture ID [{value}] is not a valid culture identifier.")
        return value

    @property
    def is_english(self) -> bool:
        return self.name.casefold() == ENGLISH.casefold()


class FallbackFontConfig(BaseModel):
    """One entry of the fallback font chain."""

    model_config = ConfigDict(extra="forbid")

    path: Path
    name: str | None = None
    font_size: int = Field(default=32, ge=1)
    atlas_width: int = Field(default=1024, ge=1)
    atlas_height: int = Field(default=1024, ge=1)
    padding: int = Field(default=5, ge=0)
    default_coverage: bool = False


class FetchConfig(BaseModel):
    """Remote fetch transport settings."""

    model_config = ConfigDict(extra="forbid")

    api_key_env: str = "LOCSMITH_SHEETS_API_KEY"
    token_env: str = "LOCSMITH_SHEETS_TOKEN"
    timeout: float = Field(default=30.0, gt=0)
    base_url: str = SHEETS_API_URL

    def api_key(self) -> str | None:
        return os.environ.get(self.api_key_env) or None

    def token(self) -> str | None:
        return os.environ.get(self.token_env) or None


class AtlasConfig(BaseModel):
    """Glyph atlas synthesis settings."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    output_dir: Path = Path("atlases")
    sizes: list[int] = Field(default_factory=lambda: list(ATLAS_SIZES))
    max_font_size: int = Field(default=200, ge=1)

    @field_validator("sizes")
    @classmethod
    def check_sizes(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("At least one atlas size is required.")
        if any(size <= 0 for size in value) or value != sorted(set(value)):
            raise ValueError("Atlas sizes must be positive and strictly ascending.")
        return value


class LocsmithConfig(BaseModel):
    """Top-level project configuration."""

    model_config = ConfigDict(extra="forbid")

    master_table: str = DEFAULT_MASTER_TABLE
    first_language_column: int = Field(default=DEFAULT_FIRST_LANGUAGE_COLUMN, ge=2)
    ids_module: Path = Path("loc_ids.py")
    documents: list[DocumentConfig] = Field(min_length=1)
    languages: list[LanguageConfig] = Field(default_factory=list)
    fallback_fonts: list[FallbackFontConfig] = Field(default_factory=list)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    atlas: AtlasConfig = Field(default_factory=AtlasConfig)

    @model_validator(mode="after")
    def check_tables(self) -> LocsmithConfig:
        """Reject configurations whose documents map to the same table."""
        names = [name for name, _ in self.tables()]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Documents resolve to duplicate table names: {', '.join(duplicates)}")
        return self

    def table_name(self, index: int) -> str:
        """Table name of the ``index``-th document (0 is the master)."""
        if index == 0:
            return self.master_table
        document = self.documents[index]
        if document.name:
            return document.name
        return slugify(document.canonical_path.stem, separator="_", lowercase=False)

    def tables(self) -> list[tuple[str, DocumentConfig]]:
        return [(self.table_name(index), doc) for index, doc in enumerate(self.documents)]

    @property
    def foreign_languages(self) -> list[str]:
        return [language.name for language in self.languages if not language.is_english]

    @property
    def language_names(self) -> list[str]:
        names = [language.name for language in self.languages]
        if not any(language.is_english for language in self.languages):
            names.insert(0, ENGLISH)
        return names

    def language(self, name: str) -> LanguageConfig | None:
        folded = name.casefold()
        for language in self.languages:
            if language.name.casefold() == folded:
                return language
        return None

    def resolved(self, base_dir: Path) -> LocsmithConfig:
        """Return a copy with every relative path anchored at ``base_dir``."""

        def anchor(path: Path | None) -> Path | None:
            if path is None or path.is_absolute():
                return path
            return base_dir / path

        return self.model_copy(
            update={
                "ids_module": anchor(self.ids_module),
                "documents": [
                    doc.model_copy(update={"canonical_path": anchor(doc.canonical_path)})
                    for doc in self.documents
                ],
                "languages": [
                    lang.model_copy(update={"font": anchor(lang.font)}) for lang in self.languages
                ],
                "fallback_fonts": [
                    font.model_copy(update={"path": anchor(font.path)})
                    for font in self.fallback_fonts
                ],
                "atlas": self.atlas.model_copy(update={"output_dir": anchor(self.atlas.output_dir)}),
            }
        )


def load_config(path: Path, *, overrides: dict[str, Any] | None = None) -> LocsmithConfig:
    """Load and validate a YAML configuration file."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration '{path}' must contain a mapping.")
    if overrides:
        data.update(overrides)
    try:
        config = LocsmithConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration '{path}':\n{exc}") from exc
    return config.resolved(path.resolve().parent)


__all__ = [
    "DEFAULT_MASTER_TABLE",
    "AtlasConfig",
    "DocumentConfig",
    "FallbackFontConfig",
    "FetchConfig",
    "LanguageConfig",
    "LocsmithConfig",
    "load_config",
]
