"""Editor identity taken from a Supabase bearer token.

The token is decoded, not verified: signature checks belong to the gateway in
front of this service.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Optional, Tuple

from domain.overrides.models import Editor

DEFAULT_EMAIL = "anonymous"


def extract_user_from_jwt(authorization_header: Optional[str]) -> Tuple[Optional[str], str]:
    if not authorization_header or not isinstance(authorization_header, str):
        return None, DEFAULT_EMAIL

    try:
        scheme, token = authorization_header.split(" ", 1)
        if scheme.lower() != "bearer":
            return None, DEFAULT_EMAIL
    except ValueError:
        return None, DEFAULT_EMAIL

    parts = token.strip().split(".")
    if len(parts) < 2:
        return None, DEFAULT_EMAIL

    payload_segment = parts[1]
    padding = "=" * (-len(payload_segment) % 4)

    try:
        decoded_bytes = base64.urlsafe_b64decode(payload_segment + padding)
        payload = json.loads(decoded_bytes.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None, DEFAULT_EMAIL

    if not isinstance(payload, dict):
        return None, DEFAULT_EMAIL

    user_id = payload.get("sub")
    user_email = payload.get("email") or DEFAULT_EMAIL
    return (str(user_id) if user_id is not None else None), str(user_email)


def editor_from_authorization(authorization_header: Optional[str]) -> Editor:
    user_id, email = extract_user_from_jwt(authorization_header)
    return Editor(user_id=user_id, email=email)


__all__ = ["DEFAULT_EMAIL", "editor_from_authorization", "extract_user_from_jwt"]
