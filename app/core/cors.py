"""Origin allow-list for browser calls to the webhook endpoints.

Exact hosts are checked first, then host patterns for preview deployments
whose subdomains change per session. Anything else gets no usable
Access-Control-Allow-Origin value.
"""

import re
from typing import Iterable, Optional
from urllib.parse import urlsplit

from app.core.config import Settings

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
CORS_ALLOW_METHODS = "POST, OPTIONS"


def resolve_allowed_origin(
    origin_header: Optional[str],
    allowed_hosts: Iterable[str],
    host_patterns: Iterable[str],
) -> Optional[str]:
    """Return the normalized origin if it is allowed, else None.

    Only https origins qualify. Patterns must match the whole host.
    """
    if not origin_header:
        return None

    try:
        parts = urlsplit(origin_header.strip())
        host = parts.netloc.lower()
    except ValueError:
        return None

    if parts.scheme != "https" or not host:
        return None

    origin = f"{parts.scheme}://{host}"

    for allowed in allowed_hosts:
        if host == allowed.lower():
            return origin

    for pattern in host_patterns:
        if re.fullmatch(pattern, host):
            return origin

    return None


def build_cors_headers(
    origin_header: Optional[str],
    settings: Settings,
    extra_allow_headers: Iterable[str] = (),
) -> dict[str, str]:
    """CORS headers for a webhook response."""
    allowed_origin = resolve_allowed_origin(
        origin_header,
        settings.cors_allowed_hosts,
        settings.cors_allowed_host_patterns,
    )
    return {
        "Access-Control-Allow-Origin": allowed_origin or "null",
        "Access-Control-Allow-Headers": ", ".join([CORS_ALLOW_HEADERS, *extra_allow_headers]),
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Vary": "Origin",
    }
