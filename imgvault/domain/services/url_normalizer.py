from __future__ import annotations

from urllib.parse import urlsplit

# Hosts whose query strings carry per-session signing params, not identity
CDN_PATTERNS = (
    "fbcdn.net",
    "imgur.com",
    "cloudfront.net",
    "akamaihd.net",
    "gstatic.com",
    "googleusercontent.com",
    "wp.com",
    "amazonaws.com",
    "cloudinary.com",
    "imgix.net",
)


def is_cdn(hostname: str) -> bool:
    return any(pattern in hostname for pattern in CDN_PATTERNS)


def normalize_url(url: str | None) -> str:
    """Strip dynamic query params from CDN URLs; other URLs are returned as is."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.hostname:
        return url
    if is_cdn(parts.hostname):
        return f"{parts.scheme}://{parts.netloc}{parts.path}"
    return url


def urls_equal(url1: str | None, url2: str | None) -> bool:
    return normalize_url(url1) == normalize_url(url2)
