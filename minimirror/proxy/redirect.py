from urllib.parse import urlsplit, urlunsplit


def is_redirect_status(status_code: int) -> bool:
    return 300 <= status_code <= 308


def retarget_location(location: str, scheme: str, netloc: str) -> str:
    """
    Point a redirect back at the mirror.

    Scheme and host of ``location`` are replaced with the inbound request's
    so the client keeps talking to the mirror; path, query and fragment are
    preserved. Relative locations receive the mirror's scheme and host too.
    """
    parts = urlsplit(location)
    path = parts.path
    if not path.startswith("/"):
        path = "/" + path
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))
