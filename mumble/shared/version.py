from __future__ import annotations

from typing import NamedTuple, Tuple, Union

# Distribution version of this package; sent in the Version "release" string.
PACKAGE_VERSION = "0.1.0"

DEFAULT_PORT = 64738


class SemanticVersion(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


VersionLike = Union[SemanticVersion, Tuple[int, int, int]]

# Protocol version this client announces
CLIENT_VERSION = SemanticVersion(1, 2, 8)


def encode_version(version: VersionLike) -> int:
    """
    Pack a version into the 32 bit wire form: major in the upper bits,
    minor in the next byte, patch in the low byte.

    Minor and patch are masked to one byte, so out of range values are
    truncated rather than rejected. Major is not masked.
    """
    major, minor, patch = version
    return (major << 16) | ((minor & 0xFF) << 8) | (patch & 0xFF)


def decode_version(value: int) -> SemanticVersion:
    """Inverse of encode_version(). Never fails."""
    return SemanticVersion(value >> 16, (value >> 8) & 0xFF, value & 0xFF)


def parse_version(text: str) -> SemanticVersion:
    """
    Parse "MAJOR.MINOR.PATCH" (missing trailing parts default to 0).

    Raises:
        ValueError: text is not up to three dot separated integers
    """
    parts = text.strip().split(".")
    if not 1 <= len(parts) <= 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid version string: {text!r}")
    numbers = [int(p) for p in parts] + [0] * (3 - len(parts))
    return SemanticVersion(*numbers)
