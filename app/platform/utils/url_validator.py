from typing import Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from app.platform.config import settings

DEFAULT_PORTS = {"http": 80, "https": 443}

TRACKING_PARAMS = {"gclid", "fbclid", "msclkid", "dclid", "yclid", "mc_cid", "mc_eid", "_ga"}

SKIP_EXTENSIONS = (
    '.pdf', '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
    '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp', '.ico',
    '.zip', '.gz', '.tar', '.rar', '.7z',
    '.mp3', '.mp4', '.avi', '.mov', '.webm',
    '.css', '.js', '.xml', '.json',
)


def normalize_url(url: str) -> Tuple[str, bool]:
    """Add a default scheme to user input; returns (url, was_modified)."""
    url = url.strip()

    if url.startswith("//"):
        return f"https:{url}", True

    parsed = urlparse(url)

    if not parsed.scheme:
        normalized = f"https://{url}"
        return normalized, True

    return url, False


def validate_url(url: str) -> Tuple[bool, str, str]:
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized_url, was_modified = normalize_url(url)

    try:
        parsed = urlparse(normalized_url)

        if parsed.scheme not in ['http', 'https']:
            return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

        if not parsed.hostname:
            return False, normalized_url, "Invalid URL format: missing domain"

        # Touch the port so malformed values raise here
        parsed.port

        return True, normalized_url, ""

    except ValueError as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"


def _clean_query(query: str) -> str:
    if not query or settings.STRIP_QUERY_STRING:
        return ""
    params = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if not key.lower().startswith("utm_") and key.lower() not in TRACKING_PARAMS
    ]
    params.sort()
    return urlencode(params)


def canonicalize_url(url: str, base: Optional[str] = None, scheme: Optional[str] = None) -> Optional[str]:
    """
    Canonical form used for every frontier identity comparison.

    Resolves relative and protocol-relative links against ``base``, lowercases
    scheme and host, drops default ports and the fragment, removes tracking
    query parameters and canonicalizes the trailing slash.

    When ``scheme`` is given the result takes that scheme, so http and https
    spellings of one page share an identity within a crawl.

    Returns None for anything that is not a crawlable http(s) page.
    """
    if not url or not url.strip():
        return None

    raw = url.strip()
    if base:
        raw = urljoin(base, raw)
    elif raw.startswith("//"):
        raw = f"https:{raw}"

    try:
        parsed = urlparse(raw)
        url_scheme = parsed.scheme.lower()
        host = (parsed.hostname or "").lower()
        port = parsed.port
    except ValueError:
        return None

    if url_scheme not in DEFAULT_PORTS or not host:
        return None

    netloc = host
    if port and port != DEFAULT_PORTS[url_scheme]:
        netloc = f"{host}:{port}"

    path = parsed.path or "/"
    if path != "/":
        path = path.rstrip("/") or "/"
    if path.lower().endswith(SKIP_EXTENSIONS):
        return None

    if scheme and scheme.lower() in DEFAULT_PORTS:
        url_scheme = scheme.lower()

    return urlunparse((url_scheme, netloc, path, "", _clean_query(parsed.query), ""))


def domain_of(url: str) -> Optional[str]:
    """Domain key of a URL: lowercased host plus any non-default port."""
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        port = parsed.port
    except ValueError:
        return None

    if not host:
        return None
    if port and port != DEFAULT_PORTS.get(parsed.scheme.lower()):
        return f"{host}:{port}"
    return host


def is_same_domain(url: str, domain: str) -> bool:
    """Sub-domains count as different domains."""
    return domain_of(url) == domain.lower()
