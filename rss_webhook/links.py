"""
Link normalization and hashing.

Item identity is the SHA-256 of the item link in a canonical form,
so the same article is recognized even when feeds spell its URL
slightly differently (host casing, explicit default port, encoding).
"""

import hashlib
from urllib.parse import quote, urlsplit, urlunsplit

from rss_webhook.errors import MalformedLinkError

DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "ws": 80,
    "wss": 443,
    "ftp": 21,
}

# Characters left untouched when re-encoding. "%" is kept so existing
# escapes are not encoded twice.
PATH_SAFE = "/%:@!$&'()*+,;=[]|^"
QUERY_SAFE = PATH_SAFE + "?"

SINGLE_DOT = {".", "%2e"}
DOUBLE_DOT = {"..", ".%2e", "%2e.", "%2e%2e"}


def _normalize_host(hostname: str, link: str) -> str:
    if not hostname.isascii():
        try:
            hostname = hostname.encode("idna").decode("ascii")
        except UnicodeError as e:
            raise MalformedLinkError(link, f"invalid host: {e}") from e
    if ":" in hostname:
        # IPv6 literal
        return f"[{hostname}]"
    return hostname


def _remove_dot_segments(path: str) -> str:
    """Resolve "." and ".." segments of an absolute path (RFC 3986 5.2.4)."""
    segments = path.split("/")
    last = len(segments) - 1
    output: list[str] = []
    for index, segment in enumerate(segments):
        lowered = segment.lower()
        if lowered in SINGLE_DOT or lowered in DOUBLE_DOT:
            # Never pop the empty segment that holds the leading slash
            if lowered in DOUBLE_DOT and len(output) > 1:
                output.pop()
            if index == last:
                output.append("")
            continue
        output.append(segment)
    return "/".join(output)


def normalize_link(link: str) -> str:
    """
    Re-serialize an absolute URL in canonical form.

    Parameters
    ----------
    link : str
        Absolute URL to normalize.

    Returns
    -------
    str
        The normalized URL.

    Raises
    ------
    MalformedLinkError
        If the link is not a parseable absolute URL.
    """
    try:
        parts = urlsplit(link.strip())
        port = parts.port
    except ValueError as e:
        raise MalformedLinkError(link, str(e)) from e

    if not parts.scheme:
        raise MalformedLinkError(link, "missing scheme")

    scheme = parts.scheme.lower()

    if not parts.netloc:
        if scheme in DEFAULT_PORTS:
            raise MalformedLinkError(link, "missing host")
        # Opaque URL such as mailto: or urn:
        return f"{scheme}:{quote(parts.path, safe=QUERY_SAFE)}"

    if not parts.hostname:
        raise MalformedLinkError(link, "missing host")

    netloc = _normalize_host(parts.hostname, link)
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"
    userinfo, _, _ = parts.netloc.rpartition("@")
    if userinfo:
        netloc = f"{quote(userinfo, safe=PATH_SAFE)}@{netloc}"

    path = quote(_remove_dot_segments(parts.path), safe=PATH_SAFE)
    if not path and scheme in DEFAULT_PORTS:
        path = "/"

    return urlunsplit(
        (
            scheme,
            netloc,
            path,
            quote(parts.query, safe=QUERY_SAFE),
            quote(parts.fragment, safe=QUERY_SAFE),
        )
    )


def hash_link(link: str) -> str:
    """
    Derive the identity hash of an item link.

    Parameters
    ----------
    link : str
        Absolute URL of the item.

    Returns
    -------
    str
        64-character lowercase hex SHA-256 of the normalized link.

    Raises
    ------
    MalformedLinkError
        If the link is not a parseable absolute URL.
    """
    normalized = normalize_link(link)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
