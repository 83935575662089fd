"""Options manifest parsing.

Each firmware version ships an options file (options.json at the
repository root) declaring the build options it supports as a JSON array
of objects. The objects are opaque here; they are only validated to be
objects and passed through verbatim.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from pathlib import Path

from brewtroller_buildbot.types import OptionDescriptor

# Pattern handed to `git tag -l`; fnmatch syntax.
VERSION_TAG_GLOB = "v[0-9]*.[0-9]*.[0-9]*"

VERSION_TAG_PATTERN = re.compile(r"^v(\d+)\.(\d+)\.(\d+)$")


class OptionsFileError(Exception):
    """Raised when an options file is missing or malformed."""

    def __init__(self, message: str, code: str = "options_file_error") -> None:
        super().__init__(message)
        self.code = code


def is_version_tag(tag: str) -> bool:
    """Check whether a tag is a v<major>.<minor>.<patch> version tag."""
    return VERSION_TAG_PATTERN.match(tag) is not None


def version_key(tag: str) -> tuple[int, int, int]:
    """Sort key ordering version tags semantically (v1.10.0 after v1.9.0).

    Raises:
        ValueError: If the tag is not a version tag.
    """
    match = VERSION_TAG_PATTERN.match(tag)
    if match is None:
        raise ValueError(f"Not a version tag: {tag!r}")
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def parse_options(text: str) -> list[OptionDescriptor]:
    """Parse options file content.

    Args:
        text: File content.

    Returns:
        The option descriptors, in file order.

    Raises:
        OptionsFileError: If the content is not a JSON array of objects.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise OptionsFileError(f"Invalid JSON: {e}", code="invalid_json") from e

    if not isinstance(data, list):
        raise OptionsFileError(
            f"Expected a JSON array, got {type(data).__name__}",
            code="invalid_shape",
        )
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise OptionsFileError(
                f"Option {index} is a {type(item).__name__}, expected an object",
                code="invalid_shape",
            )
    return data


def load_options_file(path: Path) -> list[OptionDescriptor]:
    """Load the options file of a checked-out version.

    Args:
        path: Path to the options file.

    Returns:
        The option descriptors, in file order.

    Raises:
        OptionsFileError: If the file is missing, unreadable or malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise OptionsFileError(f"Options file not found: {path}", code="missing") from e
    except (OSError, UnicodeDecodeError) as e:
        raise OptionsFileError(f"Cannot read {path}: {e}", code="unreadable") from e
    return parse_options(text)


def version_selector(versions: Iterable[str]) -> OptionDescriptor:
    """Describe the firmware version choice as a radio option.

    Clients render this ahead of the per-version options; the chosen value
    is sent back as the BuildVersion field of a build request.
    """
    return {
        "type": "radio",
        "id": "BuildVersion",
        "title": "Firmware Version",
        "description": "Select the firmware version you want to install "
        "on your BrewTroller Board",
        "options": [{"optName": tag, "name": tag} for tag in versions],
    }


__all__ = [
    "OptionsFileError",
    "VERSION_TAG_GLOB",
    "VERSION_TAG_PATTERN",
    "is_version_tag",
    "load_options_file",
    "parse_options",
    "version_key",
    "version_selector",
]
