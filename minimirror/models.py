from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

from minimirror import vars as mirror_vars


@dataclass(frozen=True)
class MirrorConfig:
    """
    Process-wide mirror settings, built once at startup and never mutated.

    Attributes:
        target_domain: Base URL of the mirrored origin, without trailing slash.
        target_endpoint: Optional base URL used instead of ``target_domain``
            when building upstream URLs for mirrored paths. Rewriting always
            uses ``target_domain``.
        secondary_domains: Additional origins whose references are routed
            through the external-proxy endpoint.
        listen_port: Port the server binds to.
        proxy_timeout: Upstream timeout in seconds.
        max_retry: Retries allowed after the first attempt of a mirrored request.
    """

    target_domain: str
    target_endpoint: Optional[str] = None
    secondary_domains: Tuple[str, ...] = ()
    listen_port: str = "3000"
    proxy_timeout: float = 30.0
    max_retry: int = mirror_vars.MAX_RETRY

    @property
    def internal_base(self) -> str:
        return self.target_endpoint or self.target_domain

    @classmethod
    def from_env(cls) -> "MirrorConfig":
        return cls(
            target_domain=mirror_vars.TARGET_DOMAIN,
            target_endpoint=mirror_vars.TARGET_ENDPOINT or None,
            secondary_domains=tuple(mirror_vars.SECONDARY_DOMAINS),
            listen_port=mirror_vars.PORT,
            proxy_timeout=mirror_vars.PROXY_TIMEOUT,
        )

    def validate(self) -> List[str]:
        """Return configuration problems; an empty list means the mirror can run."""
        problems = []
        if not self.target_domain:
            problems.append("TARGET_DOMAIN is not set")
        else:
            problems.extend(_url_problems("TARGET_DOMAIN", self.target_domain))
        if self.target_endpoint:
            problems.extend(_url_problems("TARGET_ENDPOINT", self.target_endpoint))
        if not self.listen_port.isdigit():
            problems.append(f"PORT must be numeric, got {self.listen_port!r}")
        if self.max_retry < 0:
            problems.append("max_retry must not be negative")
        return problems


def _url_problems(name: str, url: str) -> List[str]:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return [f"{name} must be an absolute http(s) URL, got {url!r}"]
    return []
