# anonbox/core/identity.py

from datetime import date
from typing import Mapping
from cryptography.hazmat.primitives import hashes, hmac

from anonbox.core.config import get_settings

IDENTITY_LENGTH = 64  # hex chars of a SHA-256 digest

# ---------- ADDRESS HANDLING ----------

def anonymize_address(raw_address: str) -> str:
    """
    Drop the host part of an address:
    IPv4 keeps the /24 network, IPv6 keeps the first 64 bits.
    """
    if "." in raw_address:
        parts = raw_address.split(".")
        if len(parts) == 4:
            parts[3] = "0"
            return ".".join(parts)

    if ":" in raw_address:
        groups = raw_address.split(":")
        return ":".join(groups[:4]) + "::"

    return raw_address


def client_address_from_headers(headers: Mapping[str, str], fallback: str | None = None) -> str:
    """Resolve the sender address behind proxies, load balancers and Cloudflare."""
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        # "client, proxy1, proxy2"
        return forwarded_for.split(",")[0].strip()

    for header in ("cf-connecting-ip", "x-real-ip", "x-client-ip"):
        value = headers.get(header)
        if value:
            return value.strip()

    return fallback or "0.0.0.0"

# ---------- HASHING ----------

def _salt_key(salt: str, day: date | None) -> bytes:
    if day is not None:
        salt = f"{day.isoformat()}|{salt}"
    return salt.encode("utf-8")


def hash_sender_address(
    raw_address: str,
    salt: str | None = None,
    truncate: bool | None = None,
    day: date | None = None,
) -> str:
    """
    HMAC-SHA256 of the sender address → 64-char hex sender identity.

    Deterministic for a given (address, salt, day). Pass ``day`` only when
    daily salt rotation is enabled; it is an argument so the function
    stays pure.
    """
    settings = get_settings()
    if salt is None:
        salt = settings.IDENTITY_SALT
    if truncate is None:
        truncate = settings.IDENTITY_TRUNCATE_ADDRESS

    address = anonymize_address(raw_address) if truncate else raw_address

    mac = hmac.HMAC(_salt_key(salt, day), hashes.SHA256())
    mac.update(address.encode("utf-8"))
    return mac.finalize().hex()


def identity_for_request(raw_address: str, today: date) -> str:
    """Hash with the configured rotation policy applied."""
    rotation = get_settings().IDENTITY_SALT_ROTATION
    return hash_sender_address(raw_address, day=today if rotation == "daily" else None)


def is_sender_identity(value) -> bool:
    if not isinstance(value, str) or len(value) != IDENTITY_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in value)


def sender_label(identity: str) -> str:
    """Display handle for a sender we only know by hash."""
    return f"Sender-{identity[:8]}"
