"""Version/options module.

This module handles:
- Parsing the per-version options manifest file
- Semantic version tag matching and ordering
- The process-wide Version/Options Cache
"""

from brewtroller_buildbot.options.cache import OptionsCache
from brewtroller_buildbot.options.manifest import (
    OptionsFileError,
    is_version_tag,
    load_options_file,
    version_key,
    version_selector,
)

__all__ = [
    "OptionsCache",
    "OptionsFileError",
    "is_version_tag",
    "load_options_file",
    "version_key",
    "version_selector",
]
