from __future__ import annotations

from typing import Any

from diet_chat.application.dto.principal import Principal
from diet_chat.application.exceptions import AuthError
from diet_chat.domain.value_objects.enums import SenderRole


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Map verified token claims to `{user_id, role}`; only client and dietitian roles may chat."""
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthError("Token has no usable subject") from exc

    role_raw = payload.get("role")
    if role_raw not in SenderRole.__members__.values():
        raise AuthError(f"Unsupported role: {role_raw!r}")
    return Principal(user_id=user_id, role=SenderRole(role_raw))
