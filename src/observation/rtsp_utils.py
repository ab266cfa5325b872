"""
Helpers for network stream URLs.
"""

from __future__ import annotations

from typing import Union
from urllib.parse import urlparse, urlunparse


def is_stream_url(device_id: Union[int, str]) -> bool:
    return isinstance(device_id, str) and device_id.startswith(
        ("rtsp://", "rtsps://", "http://", "https://")
    )


def sanitize_url(device_id: Union[int, str]) -> str:
    """Return device_id with any embedded password masked, for logging."""
    if not is_stream_url(device_id):
        return str(device_id)

    parsed = urlparse(device_id)
    if not parsed.password:
        return device_id

    netloc = f"{parsed.username}:***@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse((
        parsed.scheme, netloc, parsed.path,
        parsed.params, parsed.query, parsed.fragment
    ))
