"""Semantic versioning utilities."""

import re
from dataclasses import dataclass
from functools import total_ordering


@total_ordering
@dataclass
class SemVer:
    """Semantic version representation."""

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None

    _SEMVER_PATTERN = re.compile(
        r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
        r"(?:-(?P<prerelease>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?"
        r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
    )

    @classmethod
    def parse(cls, version_str: str) -> "SemVer":
        """Parse a semver string.

        Args:
            version_str: Version string (e.g., "1.2.3", "2.0.0-insider+build.7")

        Returns:
            SemVer instance

        Raises:
            ValueError: If the string is not valid semver
        """
        match = cls._SEMVER_PATTERN.match(version_str.strip())
        if not match:
            raise ValueError(f"Invalid semver: {version_str}")

        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
            build=match.group("build"),
        )

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.build:
            version += f"+{self.build}"
        return version

    @property
    def core(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self.core == other.core and self.prerelease == other.prerelease

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented

        if self.core != other.core:
            return self.core < other.core

        # A prerelease sorts before its release
        if self.prerelease and not other.prerelease:
            return True
        if not self.prerelease and other.prerelease:
            return False
        if self.prerelease and other.prerelease:
            return self._compare_prerelease(self.prerelease, other.prerelease) < 0

        return False

    @staticmethod
    def _compare_prerelease(a: str, b: str) -> int:
        """Compare two prerelease strings."""
        parts_a = a.split(".")
        parts_b = b.split(".")

        for pa, pb in zip(parts_a, parts_b, strict=False):
            if pa.isdigit() and pb.isdigit():
                if int(pa) != int(pb):
                    return int(pa) - int(pb)
            elif pa.isdigit() != pb.isdigit():
                # Numeric identifiers have lower precedence than alphanumeric ones
                return -1 if pa.isdigit() else 1
            elif pa != pb:
                return -1 if pa < pb else 1

        return len(parts_a) - len(parts_b)

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))


def is_valid_version(version: str) -> bool:
    """Check whether a string is a parseable semantic version."""
    try:
        SemVer.parse(version)
    except ValueError:
        return False
    return True


def is_greater(version: str, other: str) -> bool:
    """Check if ``version`` is strictly greater than ``other``.

    Unparseable versions never compare as greater, so they never block an
    install on their own.

    Args:
        version: Version string on the left-hand side
        other: Version string on the right-hand side

    Returns:
        True if version > other
    """
    try:
        return SemVer.parse(version) > SemVer.parse(other)
    except ValueError:
        return False


def latest_version(available: list[str]) -> str | None:
    """Find the highest version in a list.

    Args:
        available: Version strings; unparseable entries are ignored

    Returns:
        The highest version as it appears in the list, or None if none parse
    """
    parsed: list[tuple[SemVer, str]] = []
    for v in available:
        try:
            parsed.append((SemVer.parse(v), v))
        except ValueError:
            continue

    if not parsed:
        return None

    return max(parsed, key=lambda item: item[0])[1]
