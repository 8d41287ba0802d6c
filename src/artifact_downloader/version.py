"""
Version string parsing.

Accepts the version forms users type on the command line and splits them into
a canonical version and an optional build number.
"""

import re
from dataclasses import dataclass
from typing import Optional

from artifact_downloader.constants import UNKNOWN_VERSION

# Checked in order; the first match wins
PLUS_BUILD_RX = re.compile(r"^(\d+\.\d+\.\d+)\+(\d+)$")
PAREN_BUILD_RX = re.compile(r"^(\d+\.\d+\.\d+)\((\d+)\)$")
VERSION_ONLY_RX = re.compile(r"^(\d+\.\d+\.\d+)$")

EMBEDDED_VERSION_RX = re.compile(r"(\d+\.\d+\.\d+)")


@dataclass(frozen=True)
class ParsedVersion:
    version: str
    build_number: Optional[str] = None


def parse_version(raw: str) -> ParsedVersion:
    """
    Parse a free-form version string into a version and optional build number.

    A single leading 'v' or 'V' is stripped, then the forms `X.Y.Z+B`, `X.Y.Z(B)`
    and `X.Y.Z` are tried in that order. Strings matching none of them are
    returned unchanged (minus the prefix) as the version, so this never raises.

    Parameters:
        raw (str): Version string such as "v1.2.3+45" or "1.2.3(45)".

    Returns:
        ParsedVersion: The parsed version and build number (None for bare forms).
    """
    normalized = raw[1:] if raw[:1] in ("v", "V") else raw

    for pattern in (PLUS_BUILD_RX, PAREN_BUILD_RX):
        match = pattern.match(normalized)
        if match:
            return ParsedVersion(match.group(1), match.group(2))

    match = VERSION_ONLY_RX.match(normalized)
    if match:
        return ParsedVersion(match.group(1))

    return ParsedVersion(normalized)


def format_version(version: str, build_number: Optional[str] = None) -> str:
    """Render a version as `version+build`, or the bare version without a build."""
    if build_number:
        return f"{version}+{build_number}"
    return version


def extract_version(file_name: str) -> str:
    """
    Find the first `X.Y.Z` version embedded in a file name.

    Returns:
        str: The version, or "unknown" if the name contains none.
    """
    match = EMBEDDED_VERSION_RX.search(file_name)
    return match.group(1) if match else UNKNOWN_VERSION
