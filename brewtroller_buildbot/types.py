"""Shared type definitions for brewtroller_buildbot.

This module contains type aliases and enums shared across subpackages
to avoid circular imports.
"""

from enum import Enum
from typing import Any

# A version tag such as "v3.1.0"; names an immutable point in upstream history.
VersionTag = str

# One configurable build option, as declared in a version's options file.
# Its shape is opaque: it is stored and re-served verbatim.
OptionDescriptor = dict[str, Any]

# Version tag -> ordered option descriptors for that version.
OptionsManifest = dict[VersionTag, list[OptionDescriptor]]

# Accepted value types for a requested build option.
OptionValue = str | int | bool


class ErrorClass(str, Enum):
    """Class of a failed request, as reported in the error envelope."""

    CLIENT = "400"
    SERVER = "500"

    @property
    def status_code(self) -> int:
        return int(self.value)

    @property
    def generic_message(self) -> str:
        if self is ErrorClass.CLIENT:
            return "Bad Request"
        return "Internal Server Error"


__all__ = [
    "ErrorClass",
    "OptionDescriptor",
    "OptionValue",
    "OptionsManifest",
    "VersionTag",
]
