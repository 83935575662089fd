"""Shared service dependencies for FastAPI.

Provides the objects created in create_app() to route handlers via
FastAPI dependency injection.
"""

from __future__ import annotations

from fastapi import Request

from brewtroller_buildbot.builds.pipeline import BuildPipeline
from brewtroller_buildbot.config import Settings
from brewtroller_buildbot.mirror.refresher import RepositoryRefresher
from brewtroller_buildbot.options.cache import OptionsCache


def get_app_settings(request: Request) -> Settings:
    """Get the settings the app was created with."""
    settings: Settings = request.app.state.settings
    return settings


def get_cache(request: Request) -> OptionsCache:
    """Get the process-wide options cache."""
    cache: OptionsCache = request.app.state.cache
    return cache


def get_pipeline(request: Request) -> BuildPipeline:
    """Get the build pipeline."""
    pipeline: BuildPipeline = request.app.state.pipeline
    return pipeline


def get_refresher(request: Request) -> RepositoryRefresher:
    """Get the repository refresher."""
    refresher: RepositoryRefresher = request.app.state.refresher
    return refresher
