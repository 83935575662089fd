"""Response envelopes for the HTTP API.

Success and failure bodies are flat JSON objects. Outside debug mode,
error bodies carry only a generic message per error class so that
internal paths and tool output do not leak; in debug mode the real
message and any context strings are included verbatim.
"""

from __future__ import annotations

import base64
import platform
from typing import TYPE_CHECKING, Any

from brewtroller_buildbot import APP_NAME, __version__

if TYPE_CHECKING:
    from brewtroller_buildbot.builds.models import BuildOutcome, BuildPipelineError

ARTIFACT_ENCODING = "base64"


def error_body(error: BuildPipelineError, debug: bool = False) -> dict[str, str]:
    """Render a failed build request.

    Args:
        error: The pipeline error.
        debug: Include the real message and context.

    Returns:
        ``{"code": "400"|"500", "message": ..., ["context0": ..., ...]}``
    """
    body = {
        "code": error.code,
        "message": error.message if debug else error.error_class.generic_message,
    }
    if debug:
        for index, context in enumerate(error.context):
            body[f"context{index}"] = context
    return body


def build_body(outcome: BuildOutcome, debug: bool = False) -> dict[str, Any]:
    """Render a successful build.

    The artifact is binary, so it travels base64-encoded.
    """
    body: dict[str, Any] = {
        "binary": base64.b64encode(outcome.artifact).decode("ascii"),
        "encoding": ARTIFACT_ENCODING,
        "filename": outcome.artifact_name,
        "size": len(outcome.artifact),
    }
    if debug:
        body.update(
            {
                "reqID": outcome.request_id,
                "buildLocation": str(outcome.workspace),
                "reqDat": outcome.raw_request.decode("utf-8", errors="replace"),
                "cmake-output": outcome.configure_output,
                "make-output": outcome.build_output,
            }
        )
    return body


def host_description() -> str:
    """One-line description of the build host, like `uname -a`."""
    return " ".join(part for part in platform.uname() if part)


def home_body(debug: bool = False) -> dict[str, str]:
    """Render the service identity."""
    body = {"app": APP_NAME, "version": __version__}
    if debug:
        body["host"] = host_description()
    return body


__all__ = [
    "ARTIFACT_ENCODING",
    "build_body",
    "error_body",
    "home_body",
    "host_description",
]
