from minimirror.proxy.errors import (
    InvalidTargetURL,
    MirrorError,
    RetriesExhausted,
    UpstreamBodyError,
)
from minimirror.proxy.fetcher import UpstreamFetcher, prepare_headers
from minimirror.proxy.redirect import is_redirect_status, retarget_location
from minimirror.proxy.retry import RetryPolicy
from minimirror.proxy.rewriter import ContentRewriter, SubstringRewriter
from minimirror.proxy.service import ClientDisconnected, MirrorService

__all__ = [
    "ClientDisconnected",
    "ContentRewriter",
    "InvalidTargetURL",
    "MirrorError",
    "MirrorService",
    "RetriesExhausted",
    "RetryPolicy",
    "SubstringRewriter",
    "UpstreamBodyError",
    "UpstreamFetcher",
    "is_redirect_status",
    "prepare_headers",
    "retarget_location",
]
