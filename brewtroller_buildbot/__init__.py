"""BrewTroller Build Bot - compile BrewTroller firmware on request.

This package keeps a live cache of the firmware versions published in the
upstream BrewTroller repository and the build options each version
declares, and drives cmake/make in isolated workspaces to produce a
firmware image for a requested board and option set.
"""

APP_NAME = "BrewTroller Build Bot"

__version__ = "0.1.0"
__all__ = ["APP_NAME", "__version__"]
