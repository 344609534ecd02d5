"""Pydantic schemas for extman data files.

This module defines the data models for:
- package.json (extension manifest)
- extensions.json (local store index)
- registry.json (gallery index)
- config.yaml (extman settings)
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from extman.utils.version import is_valid_version

# =============================================================================
# Common Types
# =============================================================================

ExtensionKind = Literal["user", "system"]

EXTENSION_CATEGORIES = [
    "Programming Languages",
    "Snippets",
    "Linters",
    "Themes",
    "Debuggers",
    "Other",
    "Keymaps",
    "Formatters",
    "Extension Packs",
    "SCM Providers",
    "Azure",
    "Language Packs",
    "Data Science",
    "Machine Learning",
    "Visualization",
    "Testing",
    "Notebooks",
]


# =============================================================================
# Extension Manifest Models
# =============================================================================


class LocalizationContribution(BaseModel):
    """A translation bundle contributed by a language pack."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    language_id: str = Field(alias="languageId")
    language_name: str | None = Field(default=None, alias="languageName")
    localized_language_name: str | None = Field(default=None, alias="localizedLanguageName")
    translations: list[dict[str, str]] = Field(default_factory=list)


class ExtensionContributions(BaseModel):
    """The parts of ``contributes`` that extman inspects."""

    model_config = {"extra": "allow"}

    localizations: list[LocalizationContribution] = Field(default_factory=list)


class ExtensionManifest(BaseModel):
    """Extension manifest (package.json)."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    publisher: str
    name: str
    version: str
    display_name: str | None = Field(default=None, alias="displayName")
    description: str = ""
    categories: list[str] = Field(default_factory=list)
    engines: dict[str, str] = Field(default_factory=dict)
    contributes: ExtensionContributions = Field(default_factory=ExtensionContributions)

    @field_validator("publisher", "name")
    @classmethod
    def validate_id_part(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not is_valid_version(v):
            raise ValueError(f"Invalid version: {v}")
        return v

    @property
    def identifier(self) -> str:
        """The ``publisher.name`` identifier of this extension."""
        return f"{self.publisher}.{self.name}"

    @property
    def is_language_pack(self) -> bool:
        return bool(self.contributes.localizations)


# =============================================================================
# Local Store Index
# =============================================================================


class InstalledRecord(BaseModel):
    """One user-installed extension as persisted in extensions.json."""

    model_config = {"populate_by_name": True}

    identifier: str
    location: str
    manifest: ExtensionManifest
    kind: ExtensionKind = "user"
    is_builtin: bool = Field(default=False, alias="isBuiltin")
    is_machine_scoped: bool = Field(default=False, alias="isMachineScoped")


class StoreIndex(BaseModel):
    """Index of user-installed extensions (extensions.json)."""

    version: str = "1"
    extensions: list[InstalledRecord] = Field(default_factory=list)


# =============================================================================
# Gallery Index
# =============================================================================


class GalleryEntry(BaseModel):
    """Published versions of one extension in a gallery."""

    versions: list[str] = Field(default_factory=list)
    latest: str | None = None


class GalleryIndex(BaseModel):
    """Gallery index (registry.json)."""

    packages: dict[str, GalleryEntry] = Field(default_factory=dict)


# =============================================================================
# Settings
# =============================================================================


class ExtmanSettings(BaseModel):
    """extman settings (config.yaml in the extman home directory).

    Relative paths are resolved against the home directory.
    """

    extensions_dir: str = "extensions"
    system_extensions_dir: str | None = None
    gallery: str | None = None
    localization_cache: str = "languagepacks.json"
    max_workers: int = Field(default=8, ge=1)
