import logging
from typing import Optional, Dict
from contextlib import contextmanager

from opentelemetry.trace import Tracer

from minimirror.utils import redact_url

logger = logging.getLogger("uvicorn.error")


@contextmanager
def traced_request(
    tracer: Tracer,
    operation: str,
    method: str,
    url: str,
    start_message: Optional[str] = None,
    extra_attrs: Optional[Dict] = None,
):
    """Context manager to create a span, set the upstream attributes, and log a start message."""
    safe_url = redact_url(url)
    with tracer.start_as_current_span(operation) as span:
        span.set_attribute("mirror.method", method)
        span.set_attribute("mirror.target_url", safe_url)
        if extra_attrs:
            for k, v in extra_attrs.items():
                span.set_attribute(k, v)
        if start_message:
            logger.debug(start_message.replace(url, safe_url))
        yield span
