"""
Webhook Security
================
FastAPI dependency guarding every ingest endpoint. The export apps can
only call a fixed URL, so authentication is a shared secret in the
``?token=`` query string plus an optional source-IP whitelist.

Checks, in order:
    1. Client IP must be in IP_WHITELIST (empty whitelist allows all) → 403
    2. ``token`` must equal SECRET_TOKEN → 401

The dependency returns the client IP so handlers can prefix their log
lines with it.
"""

from __future__ import annotations

import hmac
import logging
import re
from typing import Optional, Sequence

from fastapi import Depends, HTTPException, Query, Request, status

from healthsync.config import Settings, get_settings

logger = logging.getLogger(__name__)

_IPV4_MAPPED = re.compile(r"^::ffff:(\d+\.\d+\.\d+\.\d+)$", re.IGNORECASE)


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def normalize_ip(ip: str) -> str:
    match = _IPV4_MAPPED.match(ip)
    if match:
        return match.group(1)
    if ip == "::1":
        return "localhost"
    return ip


def is_ip_whitelisted(ip: str, allowed: Sequence[str]) -> bool:
    if not allowed:
        return True
    return normalize_ip(ip) in allowed


def verify_request(
    request: Request,
    token: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    """Reject callers outside the whitelist or without the shared secret."""
    client_ip = get_client_ip(request)
    logger.info("[%s] Received request: %s %s", client_ip, request.method, request.url.path)

    if not is_ip_whitelisted(client_ip, settings.allowed_ips):
        logger.warning(
            "[%s] IP not whitelisted (normalised %s)", client_ip, normalize_ip(client_ip)
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Forbidden: IP address not allowed", "code": "ip_not_allowed"},
        )

    # An unset secret rejects every request rather than accepting a missing token
    if not settings.secret_token or not token or not hmac.compare_digest(
        token.encode(), settings.secret_token.encode()
    ):
        logger.warning("[%s] Invalid token", client_ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Unauthorized: Invalid token", "code": "invalid_token"},
        )

    return client_ip
