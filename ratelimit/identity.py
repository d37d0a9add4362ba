"""
Client identity derivation.

Callers are identified by a salted SHA-256 digest of their network
address as reported by proxy/CDN headers. The raw address never leaves
this module.
"""
import hashlib
import ipaddress
from typing import Mapping, Optional

from config import IP_HASH_SALT
from .config import IDENTITY_KEY_LENGTH, IDENTITY_FALLBACK_MAX_LENGTH

# Checked in order; first valid address wins
ADDRESS_HEADERS = (
    "cf-connecting-ip",     # Cloudflare
    "x-forwarded-for",      # Standard proxy header
    "x-real-ip",            # Nginx proxy
    "x-client-ip",          # Apache proxy
    "x-forwarded",          # General forwarded
    "forwarded-for",        # Alternative
    "forwarded",            # RFC 7239
)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # Starlette Headers are case-insensitive; plain dicts may not be
    value = headers.get(name)
    if value is None:
        value = headers.get(name.title())
    return value


def is_valid_ip_address(value: str) -> bool:
    """True for a syntactically valid IPv4 or IPv6 address."""
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def resolve_client_address(headers: Mapping[str, str]) -> str:
    """
    Get the caller's address from request headers.

    Forwarding headers may carry a hop list; only the first hop is considered.
    Falls back to a user-agent/accept-language composite when no header
    holds a valid address.
    """
    for name in ADDRESS_HEADERS:
        value = _header(headers, name)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        if is_valid_ip_address(candidate):
            return candidate

    user_agent = _header(headers, "user-agent") or "unknown"
    accept_language = _header(headers, "accept-language") or "unknown"
    return f"{user_agent}-{accept_language}"[:IDENTITY_FALLBACK_MAX_LENGTH]


def hash_identifier(raw: str, salt: Optional[str] = None) -> str:
    """Salted SHA-256 hex digest of a raw identifier."""
    data = f"{raw}:{salt or IP_HASH_SALT}".encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def create_identity_key(raw: str, salt: Optional[str] = None) -> str:
    """Shortened digest suitable for use as a storage key."""
    return hash_identifier(raw, salt)[:IDENTITY_KEY_LENGTH]


def resolve_identity(headers: Mapping[str, str], salt: Optional[str] = None) -> str:
    """Headers -> storage key. Deterministic for a caller within a salt epoch."""
    return create_identity_key(resolve_client_address(headers), salt)


def sanitize_ip_for_logging(ip: str) -> str:
    """Mask an address for log output."""
    if not ip:
        return "unknown"

    if ip in ("::1", "127.0.0.1"):
        return "localhost"

    if "." in ip:
        parts = ip.split(".")
        if len(parts) == 4:
            return f"{parts[0]}.xxx.xxx.{parts[3]}"

    if ":" in ip:
        parts = ip.split(":")
        if len(parts) >= 2:
            return f"{parts[0]}:xxxx:...:{parts[-1]}"

    return ip[:4] + "xxx"
