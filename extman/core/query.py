"""Read-only queries over installed extensions: list and locate."""

from collections.abc import Sequence
from pathlib import Path

from extman.config.schemas import EXTENSION_CATEGORIES
from extman.core.output import Output
from extman.core.reference import get_id, normalize_id
from extman.store.base import ExtensionStore


def list_extensions(
    store: ExtensionStore,
    output: Output,
    show_versions: bool = False,
    category: str | None = None,
) -> list[str]:
    """Print user-installed extensions, one identifier per line.

    Args:
        store: Extension store
        output: Output sink
        show_versions: Append ``@version`` to each identifier
        category: Only list extensions in this category; "" prints the known categories

    Returns:
        The printed lines
    """
    extensions = store.get_installed(kind="user")
    categories = [c.lower() for c in EXTENSION_CATEGORIES]

    if category == "":
        output.log("Possible Categories: ")
        for name in categories:
            output.log(name)
        return categories

    if category:
        if category.lower() not in categories:
            output.log(
                "Invalid category please enter a valid category. To list valid categories "
                "run --category without a category specified"
            )
            return []
        extensions = [
            e for e in extensions if category.lower() in (c.lower() for c in e.manifest.categories)
        ]

    lines: list[str] = []
    last_id: str | None = None
    for extension in sorted(extensions, key=lambda e: normalize_id(e.identifier)):
        if normalize_id(extension.identifier) != last_id:
            last_id = normalize_id(extension.identifier)
            line = get_id(extension.manifest, show_versions)
            output.log(line)
            lines.append(line)

    return lines


def locate_extensions(
    store: ExtensionStore,
    identifiers: Sequence[str],
    output: Output,
) -> list[Path]:
    """Print the local folder of each installed extension matching an identifier.

    Entries stored at non-local locations are omitted.
    """
    installed = store.get_installed()
    paths: list[Path] = []

    for identifier in identifiers:
        for extension in installed:
            if extension.identifier != identifier:
                continue
            path = extension.local_path
            if path is not None:
                output.log(str(path))
                paths.append(path)

    return paths
