"""URL normalization helpers for discovery and dedup."""

import hashlib
import posixpath
import re
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from ..errors import InvalidUrlError

TRACKING_PARAMS = {
    "fbclid",
    "gclid",
    "dclid",
    "msclkid",
    "yclid",
    "mc_cid",
    "mc_eid",
    "igshid",
    "_ga",
    "_gl",
    "ref",
    "ref_src",
    "ref_url",
    "cmpid",
    "ocid",
    "smid",
}

DEFAULT_PORTS = {"http": 80, "https": 443}

ARTICLE_URL_PATTERNS = [
    re.compile(r"/\d{4}/\d{2}/\d{2}/[^/]+/?$"),
    re.compile(r"/article/[^/]+/?$"),
    re.compile(r"/news/[^/]+/?$"),
    re.compile(r"/story/[^/]+/?$"),
    re.compile(r"/posts?/[^/]+/?$"),
    re.compile(r"/blog/[^/]+/?$"),
    re.compile(r"/[^/]+-\d+/?$"),
    re.compile(r"/[a-z0-9-]{10,}/?$"),
]

EXCLUDE_URL_PATTERNS = [
    re.compile(r"\.(jpg|jpeg|png|gif|webp|svg|pdf|mp3|mp4|mov|avi|zip)$", re.I),
    re.compile(r"/category/"),
    re.compile(r"/tag/"),
    re.compile(r"/author/"),
    re.compile(r"/page/"),
    re.compile(r"/search/"),
    re.compile(r"/archive/"),
    re.compile(r"/wp-admin"),
    re.compile(r"/wp-login"),
    re.compile(r"/feed/?$"),
    re.compile(r"/rss"),
]


def _is_tracking_param(name: str, strip: set) -> bool:
    lowered = name.lower()
    return lowered.startswith("utm_") or lowered in strip


def _resolve_dot_segments(path: str) -> str:
    if not path or path == "/":
        return "/"
    if "/." not in path and not path.startswith("."):
        return path
    resolved = posixpath.normpath(path)
    # normpath drops the trailing slash, which is stripped later anyway,
    # and keeps a leading double slash, which is collapsed here
    resolved = re.sub(r"^/+", "/", resolved)
    return resolved if resolved.startswith("/") else "/" + resolved


def normalize_url(
    raw_url: str,
    base_url: Optional[str] = None,
    *,
    strip_params: Optional[Iterable[str]] = None,
) -> str:
    """Normalize a URL for dedup and history lookups.

    - Resolve relative URLs against ``base_url`` and dot segments in the path
    - Lowercase scheme + host, drop default ports
    - Strip tracking query parameters (``utm_*`` and known click ids)
    - Sort remaining query params, drop the fragment
    - Remove the trailing slash except on the root path

    Raises:
        InvalidUrlError: if the URL cannot be parsed or is not http(s) with a host
    """
    if raw_url is None or not str(raw_url).strip():
        raise InvalidUrlError(str(raw_url), "empty URL")

    url = str(raw_url).strip()
    if base_url:
        url = urljoin(base_url, url)

    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise InvalidUrlError(url, str(e))

    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidUrlError(url, f"unsupported scheme {scheme or '(none)'}")

    host = (parts.hostname or "").lower()
    if not host:
        raise InvalidUrlError(url, "missing host")
    if any(c.isspace() for c in host):
        raise InvalidUrlError(url, "whitespace in host")

    netloc = host
    if ":" in host:
        # IPv6 literal
        netloc = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    path = _resolve_dot_segments(parts.path)
    if len(path) > 1:
        path = path.rstrip("/") or "/"

    strip = {p.lower() for p in strip_params} if strip_params is not None else TRACKING_PARAMS
    kept = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not _is_tracking_param(k, strip)
    ]
    kept.sort(key=lambda kv: (kv[0], kv[1]))
    query = urlencode(kept, doseq=True)

    return urlunsplit((scheme, netloc, path, query, ""))


def extract_domain(url: str) -> str:
    """Extract the canonical domain (host without ``www.``) from a URL."""
    host = (urlsplit(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host or "unknown"


def is_same_site(url: str, base_url: str) -> bool:
    """Whether two URLs share a host, ignoring a ``www.`` prefix."""
    try:
        return extract_domain(url) == extract_domain(base_url)
    except ValueError:
        return False


def is_likely_article_url(url: str) -> bool:
    """Heuristic check that a URL points at an article rather than a section page."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    if parts.scheme.lower() not in DEFAULT_PORTS:
        return False
    path = parts.path.lower()
    if any(p.search(path) for p in EXCLUDE_URL_PATTERNS):
        return False

    return any(p.search(path) for p in ARTICLE_URL_PATTERNS)


def url_hash(url: str) -> str:
    """Stable hash for a normalized URL."""
    return hashlib.sha256(normalize_url(url).encode("utf-8")).hexdigest()
