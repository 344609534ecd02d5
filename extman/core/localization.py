"""Language-pack localization cache."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from extman.config.parser import save_json
from extman.store.base import ExtensionStore

logger = logging.getLogger(__name__)


class LocalizationCache(ABC):
    """Cache of translations contributed by installed language packs."""

    @abstractmethod
    def refresh(self) -> bool:
        """Rebuild the cache from the currently installed language packs."""
        ...


class LanguagePackCache(LocalizationCache):
    """Localization cache written as a JSON file keyed by language id."""

    def __init__(self, store: ExtensionStore, cache_path: Path):
        self.store = store
        self.cache_path = cache_path

    def refresh(self) -> bool:
        languages: dict[str, dict[str, Any]] = {}

        for extension in self.store.get_installed():
            manifest = extension.manifest
            for localization in manifest.contributes.localizations:
                language_id = localization.language_id.lower()
                entry = languages.setdefault(
                    language_id,
                    {
                        "label": localization.localized_language_name
                        or localization.language_name
                        or language_id,
                        "extensions": [],
                        "translations": {},
                    },
                )
                entry["extensions"].append(
                    {"identifier": manifest.identifier, "version": manifest.version}
                )
                for translation in localization.translations:
                    translation_id = translation.get("id")
                    path = translation.get("path")
                    if translation_id and path and extension.local_path is not None:
                        entry["translations"][translation_id] = str(extension.local_path / path)

        save_json(self.cache_path, {"languages": languages})
        logger.info(
            "Rebuilt localization cache with %d language(s) at %s",
            len(languages),
            self.cache_path,
        )
        return True
