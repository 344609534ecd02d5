"""Gallery resolution for install requests.

Version-less requests are looked up in one batched gallery call while each
version-pinned request gets its own lookup; all of them run concurrently.
"""

import logging
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor

from extman.core.models import InstallRequest
from extman.core.reference import normalize_id
from extman.registry.base import GalleryClient, GalleryExtension

logger = logging.getLogger(__name__)


class GalleryResolver:
    """Resolves install requests to gallery extensions."""

    def __init__(self, gallery: GalleryClient, max_workers: int = 8):
        """Initialize the resolver.

        Args:
            gallery: Gallery client to query
            max_workers: Upper bound on concurrent lookups
        """
        self.gallery = gallery
        self.max_workers = max_workers

    def resolve(self, requests: Sequence[InstallRequest]) -> dict[str, GalleryExtension]:
        """Resolve requests against the gallery.

        Args:
            requests: Planned install requests

        Returns:
            Mapping of normalized identifier to GalleryExtension. Requests with
            no gallery match are absent.
        """
        unversioned = [r.identifier for r in requests if r.version is None]
        pinned = [r for r in requests if r.version is not None]

        if not unversioned and not pinned:
            return {}

        logger.info(
            "Resolving %d extension(s) from the gallery (%d pinned)",
            len(unversioned) + len(pinned),
            len(pinned),
        )

        futures: list[Future[list[GalleryExtension]]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            if unversioned:
                futures.append(executor.submit(self.gallery.get_extensions, unversioned))
            for request in pinned:
                futures.append(executor.submit(self._get_pinned, request))

        # Each task returns its own results; merge only after the join
        resolved: dict[str, GalleryExtension] = {}
        for future in futures:
            for extension in future.result():
                resolved[normalize_id(extension.identifier)] = extension

        logger.debug("Resolved from gallery: %s", ", ".join(sorted(resolved)) or "(none)")
        return resolved

    def _get_pinned(self, request: InstallRequest) -> list[GalleryExtension]:
        extension = self.gallery.get_compatible_extension(request.identifier, request.version)
        if extension is None:
            logger.debug("No compatible gallery version for %s", request.label)
            return []
        return [extension]
