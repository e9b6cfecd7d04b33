import logging

import httpx
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from opentelemetry import trace

from minimirror.proxy import (
    ClientDisconnected,
    InvalidTargetURL,
    MirrorService,
    RetriesExhausted,
    UpstreamBodyError,
)
from minimirror.proxy.service import CLIENT_CLOSED_REQUEST, build_external_url
from minimirror.utils import redact_url
from minimirror.utils.exception_logging import log_exception_with_details
from minimirror.vars import EXTERNAL_PATH

router = APIRouter()
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

ALL_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def get_mirror(request: Request) -> MirrorService:
    return request.app.state.mirror


async def _resolve(request: Request, route: str, call) -> Response:
    """Run a mirroring call and map its failures onto HTTP errors."""
    with tracer.start_as_current_span(route) as span:
        span.set_attribute("mirror.path", request.url.path)
        try:
            return await call
        except ClientDisconnected:
            logger.info(
                f"[{route}] client disconnected, upstream fetch cancelled for {request.url.path}"
            )
            span.set_attribute("mirror.error", "client_disconnected")
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        except InvalidTargetURL as e:
            logger.error(
                f"[{route}] cannot build upstream request for {redact_url(e.url)}"
            )
            span.set_attribute("mirror.error", "invalid_url")
            raise HTTPException(status_code=500, detail="Invalid upstream URL")
        except RetriesExhausted as e:
            span.set_attribute("mirror.error", "retries_exhausted")
            raise HTTPException(status_code=500, detail="Upstream unavailable") from e
        except UpstreamBodyError as e:
            log_exception_with_details(logger, f"[{route}]", e.cause)
            span.set_attribute("mirror.error", "body_read")
            raise HTTPException(status_code=500, detail="Failed reading upstream response")
        except httpx.HTTPError as e:
            log_exception_with_details(logger, f"[{route}]", e)
            span.set_attribute("mirror.error", type(e).__name__)
            raise HTTPException(status_code=500, detail="Upstream request failed")


@router.api_route(EXTERNAL_PATH, methods=ALL_METHODS)
@router.api_route(EXTERNAL_PATH + "/", methods=ALL_METHODS)
async def proxy_external(request: Request):
    """Fetch an explicitly supplied URL on behalf of the client."""
    url = build_external_url(request)
    if not url:
        raise HTTPException(
            status_code=400, detail="Missing EXTERNAL_URL query parameter"
        )
    mirror = get_mirror(request)
    return await _resolve(request, "external", mirror.mirror_external(request, url))


@router.get("/check", response_class=PlainTextResponse)
@router.get("/check_alive", response_class=PlainTextResponse)
async def check_alive():
    return "Ok"


# Must stay last: it matches every path, including the routes above
@router.api_route("/{path:path}", methods=ALL_METHODS)
async def mirror_all(request: Request, path: str):
    """Catch-all route that mirrors the request against the target origin."""
    mirror = get_mirror(request)
    return await _resolve(request, "internal", mirror.mirror_internal(request))
