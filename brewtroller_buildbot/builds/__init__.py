"""Build orchestration module.

This module handles:
- Parsing and validating build requests
- Translating requested options into cmake flags
- Staging a disposable workspace cloned from the mirror
- Running cmake and make
- Reading back the firmware artifact
"""

from brewtroller_buildbot.builds.models import (
    BuildOutcome,
    BuildPipelineError,
    BuildRequest,
    BuildRequestError,
    BuildServerError,
)
from brewtroller_buildbot.builds.pipeline import BuildPipeline

__all__ = [
    "BuildOutcome",
    "BuildPipeline",
    "BuildPipelineError",
    "BuildRequest",
    "BuildRequestError",
    "BuildServerError",
]
