"""Firmware build endpoint.

- POST /build - Build firmware from a JSON object of options plus the
  required ``board`` and ``BuildVersion`` fields
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from brewtroller_buildbot.builds.models import BuildPipelineError
from brewtroller_buildbot.builds.pipeline import BuildPipeline
from brewtroller_buildbot.config import Settings
from brewtroller_buildbot.responses import build_body, error_body
from web.deps import get_app_settings, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()


def _remote_addr(request: Request) -> str:
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"


@router.post("/build")
async def build_firmware(
    request: Request,
    pipeline: BuildPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """Build firmware for the requested board, version and options.

    The build blocks on external tools, so it runs in the thread pool.

    Returns:
        The artifact envelope, or an error envelope with HTTP 400/500.
    """
    body = await request.body()
    remote_addr = _remote_addr(request)
    try:
        outcome = await run_in_threadpool(pipeline.run, body, remote_addr)
    except BuildPipelineError as e:
        logger.warning("Build request from %s failed (%s): %s", remote_addr, e.code, e)
        return JSONResponse(
            status_code=e.status_code,
            content=error_body(e, settings.debug),
        )
    return JSONResponse(content=build_body(outcome, settings.debug))
