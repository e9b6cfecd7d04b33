from urllib.parse import urlsplit, urlunsplit


def redact_url(url: str) -> str:
    """Strip userinfo from a URL so credentials never reach logs or spans."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<unparseable url>"
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"****@{host}", parts.path, parts.query, parts.fragment))
