import logging
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

import httpx
from opentelemetry import trace

from minimirror.proxy.errors import InvalidTargetURL, UpstreamBodyError
from minimirror.proxy.redirect import is_redirect_status
from minimirror.utils.traced_requests import traced_request

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Request headers the HTTP client must compute for the upstream itself.
# Accept-Encoding is replaced so the body comes back as plain text.
CLIENT_MANAGED_HEADERS = {"accept-encoding", "host", "content-length"}


def prepare_headers(headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """
    Prepare inbound headers for forwarding to the upstream.

    Repeated headers are kept in order. Compression is refused explicitly,
    otherwise httpx would advertise gzip on its own and the rewriter would be
    scanning whatever the upstream chose to send.
    """
    forwarded = [
        (name, value)
        for name, value in headers
        if name.lower() not in HOP_BY_HOP_HEADERS
        and name.lower() not in CLIENT_MANAGED_HEADERS
    ]
    forwarded.append(("accept-encoding", "identity"))
    return forwarded


def check_url(url: str) -> None:
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidTargetURL(url, str(e)) from e
    if parts.scheme not in ("http", "https"):
        raise InvalidTargetURL(url, "missing http:// or https:// scheme")
    if not parts.netloc:
        raise InvalidTargetURL(url, "missing host")


class UpstreamFetcher:
    """
    Performs a single attempt per call; retrying is left to the caller.

    With ``follow_redirects=False`` a redirect carrying a Location is handed
    back unread so the caller can re-target it; every other response is
    fully buffered before it is returned.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self._transport = transport

    async def fetch(
        self,
        method: str,
        url: str,
        headers: Iterable[Tuple[str, str]],
        body: bytes = b"",
    ) -> httpx.Response:
        check_url(url)

        with traced_request(
            tracer,
            "mirror.fetch",
            method,
            url,
            start_message=f"Fetching {method} {url}",
        ) as span:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=self.follow_redirects,
                transport=self._transport,
            ) as client:
                try:
                    request = client.build_request(
                        method, url, headers=list(headers), content=body
                    )
                except httpx.InvalidURL as e:
                    raise InvalidTargetURL(url, str(e)) from e

                response = await client.send(request, stream=True)
                span.set_attribute("mirror.status_code", response.status_code)
                try:
                    if (
                        not self.follow_redirects
                        and is_redirect_status(response.status_code)
                        and "location" in response.headers
                    ):
                        return response
                    try:
                        await response.aread()
                    except httpx.RequestError as e:
                        span.set_attribute("mirror.error", "body_read")
                        raise UpstreamBodyError(url, e) from e
                finally:
                    await response.aclose()

                return response
