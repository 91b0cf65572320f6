"""
Caller pseudo-identity used for submission throttling
"""
import hashlib
from typing import Optional

from fastapi import Request


def get_client_ip(request: Optional[Request]) -> str:
    """
    Resolve the caller IP.

    Order: first X-Forwarded-For entry, X-Real-IP, socket peer, "unknown".
    """
    if request is None:
        return "unknown"

    xff = request.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_user_agent(request: Optional[Request]) -> str:
    if request is None:
        return "unknown"
    return request.headers.get("user-agent") or "unknown"


def compute_fingerprint(client_ip: str, user_agent: str) -> str:
    """SHA256 of "ip|user-agent". Not an identity, only a throttle key."""
    return hashlib.sha256(f"{client_ip}|{user_agent}".encode()).hexdigest()
