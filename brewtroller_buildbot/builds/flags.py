"""Translation of requested build options into cmake cache flags.

Accepted option values are strings, integers and booleans. Anything else
(floats, null, arrays, objects) has no unambiguous cmake spelling and is
rejected rather than dropped.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from brewtroller_buildbot.builds.models import BuildRequestError

OPTION_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def format_value(name: str, value: Any) -> str:
    """Format one option value for a -D flag.

    Raises:
        BuildRequestError: If the value type is not supported.
    """
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "ON" if value else "OFF"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value
    raise BuildRequestError(
        f"Option {name} has unsupported value type {type(value).__name__}; "
        "expected string, integer or boolean"
    )


def translate_options(options: Mapping[str, Any]) -> list[str]:
    """Build the -D flags for the configure step.

    Args:
        options: Option name to value, without BuildVersion.

    Returns:
        Flags of the form ``-DNAME=value``, sorted by name.

    Raises:
        BuildRequestError: If a name or a value is not acceptable.
    """
    flags: list[str] = []
    for name in sorted(options):
        if not OPTION_NAME_PATTERN.match(name):
            raise BuildRequestError(f"Invalid option name: {name!r}")
        flags.append(f"-D{name}={format_value(name, options[name])}")
    return flags


__all__ = ["OPTION_NAME_PATTERN", "format_value", "translate_options"]
