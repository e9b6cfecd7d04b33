from typing import Optional


class MirrorError(Exception):
    """Base class for failures while resolving a mirrored request."""


class InvalidTargetURL(MirrorError):
    """The upstream URL cannot be requested (no http(s) scheme, no host, bad syntax)."""

    def __init__(self, url: str, reason: str = "malformed URL"):
        self.url = url
        super().__init__(f"{reason}: {url!r}")


class UpstreamBodyError(MirrorError):
    """The upstream answered but its body could not be read."""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f"failed reading upstream body from {url}: {cause}")


class RetriesExhausted(MirrorError):
    """Every attempt of a mirrored request failed with a transport error or a 5xx."""

    def __init__(
        self,
        url: str,
        attempts: int,
        last_status: Optional[int] = None,
        last_error: Optional[Exception] = None,
    ):
        self.url = url
        self.attempts = attempts
        self.last_status = last_status
        self.last_error = last_error
        outcome = (
            f"status {last_status}" if last_status is not None else repr(last_error)
        )
        super().__init__(f"{url} still failing after {attempts} attempts ({outcome})")
