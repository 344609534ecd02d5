"""Configuration file parsing utilities."""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from extman.config.schemas import ExtensionManifest, ExtmanSettings, GalleryIndex, StoreIndex

SETTINGS_FILE = "config.yaml"
MANIFEST_FILE = "package.json"


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_json(path: Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e

    if not isinstance(result, dict):
        raise ConfigError(f"JSON file must contain an object: {path}", path)
    return result


def save_json(path: Path, data: dict[str, Any], indent: int = 2) -> None:
    """Save data to a JSON file.

    Args:
        path: Path to write to
        data: Data to serialize
        indent: JSON indentation level
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)
        f.write("\n")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def load_settings(home: Path) -> ExtmanSettings:
    """Load extman settings from config.yaml in the home directory.

    A missing file yields the default settings.

    Args:
        home: The extman home directory

    Returns:
        Parsed ExtmanSettings

    Raises:
        ConfigError: If the file exists but is invalid
    """
    config_path = home / SETTINGS_FILE
    if not config_path.exists():
        return ExtmanSettings()

    data = load_yaml(config_path)

    try:
        return ExtmanSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}", config_path) from e


def load_extension_manifest(extension_path: Path) -> ExtensionManifest:
    """Load an extension manifest from package.json.

    Args:
        extension_path: Path to the extension directory

    Returns:
        Parsed ExtensionManifest

    Raises:
        ConfigError: If the file is missing or invalid
    """
    manifest_path = extension_path / MANIFEST_FILE
    data = load_json(manifest_path)

    try:
        return ExtensionManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid extension manifest: {e}", manifest_path) from e


def load_store_index(index_path: Path) -> StoreIndex:
    """Load the local store index, or an empty one if it doesn't exist yet.

    Raises:
        ConfigError: If the file exists but is invalid
    """
    if not index_path.exists():
        return StoreIndex()

    data = load_json(index_path)

    try:
        return StoreIndex.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid extensions index: {e}", index_path) from e


def save_store_index(index_path: Path, index: StoreIndex) -> None:
    """Save the local store index."""
    save_json(index_path, index.model_dump(by_alias=True, exclude_none=True))


def load_gallery_index(index_path: Path) -> GalleryIndex:
    """Load a gallery index (registry.json).

    Raises:
        ConfigError: If the file is missing or invalid
    """
    data = load_json(index_path)

    try:
        return GalleryIndex.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid gallery index: {e}", index_path) from e
