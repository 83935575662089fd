"""Build request and outcome models.

A build request is a JSON object of option name to value plus two
distinguished fields: ``board`` (the target hardware) and ``BuildVersion``
(a version tag known to the options cache).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from brewtroller_buildbot.types import ErrorClass

BOARD_FIELD = "board"
VERSION_FIELD = "BuildVersion"

# Boards name an artifact file, so they must be a single safe path component.
BOARD_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


class BuildPipelineError(Exception):
    """Base error for a failed build request.

    Attributes:
        error_class: Client or server error.
        context: Extra diagnostics (tool output, paths), shown in debug mode only.
    """

    error_class = ErrorClass.SERVER

    def __init__(self, message: str, context: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = list(context or [])

    @property
    def code(self) -> str:
        return self.error_class.value

    @property
    def status_code(self) -> int:
        return self.error_class.status_code


class BuildRequestError(BuildPipelineError):
    """The request itself is invalid (HTTP 400)."""

    error_class = ErrorClass.CLIENT


class BuildServerError(BuildPipelineError):
    """The request was valid but the build failed (HTTP 500)."""

    error_class = ErrorClass.SERVER


@dataclass
class BuildRequest:
    """A validated build request.

    Attributes:
        board: Target board identifier.
        version: Requested firmware version tag.
        options: Build options, including ``board`` but not ``BuildVersion``.
        raw: The request body as received.
    """

    board: str
    version: str
    options: dict[str, Any]
    raw: bytes


@dataclass
class BuildOutcome:
    """Result of a successful build."""

    request_id: str
    workspace: Path
    raw_request: bytes
    artifact_name: str
    artifact: bytes
    configure_output: str = ""
    build_output: str = ""
    flags: list[str] = field(default_factory=list)


def _require_string(data: dict[str, Any], name: str, message: str) -> str:
    if name not in data:
        raise BuildRequestError(message)
    value = data[name]
    if not isinstance(value, str):
        raise BuildRequestError(
            f"{name} must be a string, got {type(value).__name__}"
        )
    return value


def parse_build_request(body: bytes) -> BuildRequest:
    """Parse a raw request body into a BuildRequest.

    Args:
        body: Request body bytes.

    Returns:
        Validated BuildRequest.

    Raises:
        BuildRequestError: If the body is not a JSON object, a required
            field is missing or the board is not a valid identifier.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BuildRequestError(f"Invalid build options: {e}") from e
    if not isinstance(data, dict):
        raise BuildRequestError(
            f"Build options must be a JSON object, got {type(data).__name__}"
        )

    board = _require_string(data, BOARD_FIELD, "Board Option Must be Supplied!")
    version = _require_string(data, VERSION_FIELD, "Build Version Must be Supplied!")

    if not BOARD_PATTERN.match(board) or ".." in board:
        raise BuildRequestError(f"Board {board!r} is not a valid board name")

    options = {name: value for name, value in data.items() if name != VERSION_FIELD}
    return BuildRequest(board=board, version=version, options=options, raw=body)


__all__ = [
    "BOARD_FIELD",
    "VERSION_FIELD",
    "BuildOutcome",
    "BuildPipelineError",
    "BuildRequest",
    "BuildRequestError",
    "BuildServerError",
    "parse_build_request",
]
