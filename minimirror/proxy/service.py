import asyncio
import logging
from typing import Awaitable, List, Optional, Tuple, TypeVar
from urllib.parse import unquote_plus, urlencode

import httpx
from fastapi import Request
from fastapi.responses import RedirectResponse, Response

from minimirror.models import MirrorConfig
from minimirror.proxy.fetcher import HOP_BY_HOP_HEADERS, UpstreamFetcher, prepare_headers
from minimirror.proxy.redirect import is_redirect_status, retarget_location
from minimirror.proxy.retry import RetryPolicy
from minimirror.proxy.rewriter import ContentRewriter, SubstringRewriter
from minimirror.utils import redact_url
from minimirror.vars import EXTERNAL_URL_PARAM, LEGACY_EXTERNAL_URL_PARAM

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")

# Nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499

# The rewritten body is re-measured, and httpx has already decoded it
STRIPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}


class ClientDisconnected(Exception):
    """The inbound client went away before the upstream answered."""


def _join_query(url: str, params: List[Tuple[str, str]]) -> str:
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def _raw_path(request: Request) -> str:
    # scope["path"] is percent-decoded, so %23 or %3F would change the resource
    raw = request.scope.get("raw_path")
    if raw is None:
        return request.url.path
    return raw.decode("latin-1")


def _without_control_param(query: str) -> str:
    return "&".join(
        pair
        for pair in query.split("&")
        if unquote_plus(pair.split("=", 1)[0]) != EXTERNAL_URL_PARAM
    )


def build_internal_url(config: MirrorConfig, request: Request) -> str:
    """
    ``internal_base`` plus the raw inbound path and query. The query is
    forwarded as received, minus the reserved control parameter.
    """
    url = config.internal_base + _raw_path(request)
    query = _without_control_param(request.url.query)
    if query:
        url = f"{url}?{query}"
    return url


def build_external_url(request: Request) -> Optional[str]:
    """
    Read the target of the external-proxy route.

    ``EXTERNAL_URL`` is canonical, ``url`` is still honored for older
    links. Remaining query parameters belong to the external URL itself
    (an unescaped ``&`` in it splits it into several parameters), so they
    are appended back.
    """
    for name in (EXTERNAL_URL_PARAM, LEGACY_EXTERNAL_URL_PARAM):
        target = request.query_params.get(name)
        if target:
            rest = [
                (k, v) for k, v in request.query_params.multi_items() if k != name
            ]
            return _join_query(target, rest)
    return None


def build_response(upstream: httpx.Response, body: bytes) -> Response:
    response = Response(content=body, status_code=upstream.status_code)
    for name, value in upstream.headers.multi_items():
        if name.lower() in STRIPPED_RESPONSE_HEADERS:
            continue
        response.headers.append(name, value)
    return response


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def cancel_on_disconnect(request: Request, work: Awaitable[T]) -> T:
    """
    Run ``work`` until it finishes or the client disconnects, whichever
    comes first. On disconnect the work is cancelled, which closes its
    outbound connection, and ``ClientDisconnected`` is raised.
    """
    work_task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait(
            {work_task, watcher}, return_when=asyncio.FIRST_COMPLETED
        )
        if work_task not in done and watcher.exception() is not None:
            # No usable receive channel, so disconnects cannot be observed
            return await work_task
    except asyncio.CancelledError:
        work_task.cancel()
        raise
    finally:
        watcher.cancel()

    if not work_task.done():
        work_task.cancel()
        try:
            await work_task
        except asyncio.CancelledError:
            pass
        raise ClientDisconnected()
    return work_task.result()


class MirrorService:
    """
    Wires fetcher, retry policy and rewriter together for the two mirroring
    routes. Holds no per-request state.
    """

    def __init__(
        self,
        config: MirrorConfig,
        rewriter: Optional[ContentRewriter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.rewriter = rewriter or SubstringRewriter.from_config(config)
        self.internal = RetryPolicy(
            UpstreamFetcher(config.proxy_timeout, transport=transport),
            max_retry=config.max_retry,
        )
        # Redirects from external origins are re-targeted, never followed
        self.external = UpstreamFetcher(
            config.proxy_timeout, follow_redirects=False, transport=transport
        )

    async def mirror_internal(self, request: Request) -> Response:
        url = build_internal_url(self.config, request)
        body = await request.body()
        headers = prepare_headers(request.headers.items())

        logger.debug(
            f"Mirroring {request.method} {request.url.path} -> {redact_url(url)}"
        )
        upstream = await cancel_on_disconnect(
            request, self.internal.fetch(request.method, url, headers, body)
        )
        return build_response(upstream, self.rewriter.rewrite(upstream.content))

    async def mirror_external(self, request: Request, url: str) -> Response:
        body = await request.body()
        headers = prepare_headers(request.headers.items())

        logger.debug(f"Proxying external {request.method} -> {redact_url(url)}")
        upstream = await cancel_on_disconnect(
            request, self.external.fetch(request.method, url, headers, body)
        )

        location = upstream.headers.get("location")
        if is_redirect_status(upstream.status_code) and location:
            target = retarget_location(
                location, request.url.scheme, request.url.netloc
            )
            logger.debug(f"Re-targeting redirect {location} -> {target}")
            return RedirectResponse(target, status_code=upstream.status_code)

        return build_response(upstream, self.rewriter.rewrite(upstream.content))
