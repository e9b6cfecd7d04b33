"""
Body rewriting for mirrored responses.

Rewriting is plain substring replacement on the raw bytes: it knows
nothing about HTML, CSS or URLs, so a domain string that shows up in prose
is rewritten as well.
"""

import re
from typing import Iterable, Protocol

from minimirror.models import MirrorConfig
from minimirror.vars import EXTERNAL_PATH, EXTERNAL_URL_PARAM

EXTERNAL_PREFIX = f"{EXTERNAL_PATH}?{EXTERNAL_URL_PARAM}="


class ContentRewriter(Protocol):
    def rewrite(self, body: bytes) -> bytes: ...


class SubstringRewriter:
    """
    Two ordered passes:

    1. ``<target_domain>/`` becomes ``/`` so self references resolve against
       the mirror's own host.
    2. Every secondary domain ``D`` becomes ``/_EXTERNAL_?EXTERNAL_URL=D`` so
       the client fetches it through the mirror. Occurrences already carrying
       that prefix are left alone, which keeps the rewrite idempotent.
    """

    def __init__(self, target_domain: str, secondary_domains: Iterable[str] = ()):
        self.target_domain = target_domain.encode("utf-8")
        prefix = EXTERNAL_PREFIX.encode("utf-8")
        self._secondary = [
            (
                re.compile(b"(?<!" + re.escape(prefix) + b")" + re.escape(d.encode("utf-8"))),
                prefix + d.encode("utf-8"),
            )
            for d in secondary_domains
            if d
        ]

    @classmethod
    def from_config(cls, config: MirrorConfig) -> "SubstringRewriter":
        return cls(config.target_domain, config.secondary_domains)

    def rewrite(self, body: bytes) -> bytes:
        if not body:
            return body

        if self.target_domain:
            body = body.replace(self.target_domain + b"/", b"/")

        for pattern, replacement in self._secondary:
            # callable replacement keeps backslashes in domains literal
            body = pattern.sub(lambda _m, r=replacement: r, body)

        return body
