import logging
from typing import Iterable, Optional, Tuple

import httpx
from opentelemetry import trace

from minimirror.proxy.errors import RetriesExhausted
from minimirror.proxy.fetcher import UpstreamFetcher
from minimirror.utils import redact_url
from minimirror.utils.exception_logging import log_exception_with_details
from minimirror.vars import MAX_RETRY

logger = logging.getLogger("uvicorn.error")


def is_server_error(status_code: int) -> bool:
    return 500 <= status_code < 600


class RetryPolicy:
    """
    Re-issues a fetch while the upstream fails.

    Transport errors and 5xx answers are retried immediately, without
    backoff, until ``max_retry`` retries have been spent. Anything below 500
    (4xx included) is final. The request body is plain bytes, so every
    attempt sends it unchanged.
    """

    def __init__(self, fetcher: UpstreamFetcher, max_retry: int = MAX_RETRY):
        self.fetcher = fetcher
        self.max_retry = max_retry

    async def fetch(
        self,
        method: str,
        url: str,
        headers: Iterable[Tuple[str, str]],
        body: bytes = b"",
    ) -> httpx.Response:
        headers = list(headers)
        safe_url = redact_url(url)
        last_status: Optional[int] = None
        last_error: Optional[Exception] = None
        attempts = self.max_retry + 1

        for attempt in range(1, attempts + 1):
            try:
                response = await self.fetcher.fetch(method, url, headers, body)
            except httpx.TransportError as e:
                last_status, last_error = None, e
                log_exception_with_details(
                    logger,
                    f"[Retry] attempt {attempt}/{attempts} {method} {safe_url}:",
                    e,
                    level=logging.WARNING,
                )
                continue

            if not is_server_error(response.status_code):
                if attempt > 1:
                    logger.info(
                        f"[Retry] {method} {safe_url} succeeded on attempt {attempt}"
                    )
                trace.get_current_span().set_attribute("mirror.attempts", attempt)
                return response

            last_status, last_error = response.status_code, None
            logger.warning(
                f"[Retry] attempt {attempt}/{attempts} {method} {safe_url}: "
                f"upstream answered {response.status_code}"
            )

        trace.get_current_span().set_attribute("mirror.attempts", attempts)
        logger.error(
            f"[Retry] giving up on {method} {safe_url} after {attempts} attempts "
            f"(last status: {last_status}, last error: {type(last_error).__name__ if last_error else None})"
        )
        raise RetriesExhausted(
            safe_url, attempts, last_status=last_status, last_error=last_error
        )
