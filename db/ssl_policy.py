"""
db/ssl_policy.py
----------------
Decides whether the PostgreSQL connection must be encrypted.

Hosted free-tier databases only accept TLS connections but are usually
configured with a bare URI, so the host name is matched against a list
of known managed-hosting patterns. SSL is turned on when:

    - the host matches one of MANAGED_HOST_PATTERNS, or
    - the process runs in the ``production`` environment class.

An explicit ``sslmode`` in the URI always wins: require, verify-ca and
verify-full count as SSL, disable, allow and prefer do not. When the policy
turns SSL on by itself, certificates are not verified (``sslmode=require``).
"""

from typing import Optional
from urllib.parse import parse_qs, urlparse

MANAGED_HOST_PATTERNS: tuple[str, ...] = (
    "render.com",
    "render",
)

PRODUCTION_ENVIRONMENTS: tuple[str, ...] = ("production",)

SSL_REQUIRE_TOKEN = "sslmode=require"
_SSLMODE_KEY = "sslmode="

# libpq modes that may fall back to a plaintext connection.
NON_SSL_MODES: tuple[str, ...] = ("disable", "allow", "prefer")


def host_from_url(url: str) -> Optional[str]:
    """Extract the host name from a connection URI (None if unparsable)."""
    if not url:
        return None
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_managed_host(host: Optional[str]) -> bool:
    """True when the host name looks like a managed PostgreSQL provider."""
    if not host:
        return False
    host = host.lower()
    return any(pattern in host for pattern in MANAGED_HOST_PATTERNS)


def url_sslmode(url: Optional[str]) -> Optional[str]:
    """The ``sslmode`` query parameter of a URI, lowercased, or None."""
    if not url:
        return None
    try:
        values = parse_qs(urlparse(url).query).get("sslmode")
    except ValueError:
        return None
    return values[-1].strip().lower() if values else None


def url_requests_ssl(url: Optional[str]) -> bool:
    """True when the URI asks for TLS (require, verify-ca, verify-full)."""
    mode = url_sslmode(url)
    return mode is not None and mode not in NON_SSL_MODES


def should_use_ssl(url: Optional[str], host: Optional[str], environment: str) -> bool:
    """
    Apply the SSL policy.

    Args:
        url: Full connection URI, if configured.
        host: Discrete host name (used when no URI is given).
        environment: Environment class, e.g. 'development' or 'production'.
    """
    # An explicit sslmode in the URI is what libpq will use.
    if url_sslmode(url) is not None:
        return url_requests_ssl(url)
    if is_managed_host(host or host_from_url(url or "")):
        return True
    return environment in PRODUCTION_ENVIRONMENTS


def normalize_database_url(url: str) -> str:
    """
    Append ``sslmode=require`` to URIs pointing at a managed host.

    A URI that already carries any ``sslmode=`` value is returned unchanged.
    """
    if not url or _SSLMODE_KEY in url:
        return url
    if is_managed_host(host_from_url(url)):
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{SSL_REQUIRE_TOKEN}"
    return url
