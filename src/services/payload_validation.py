"""Request payload checks shared by the proxy routes.

The backend enforces its own rules; these checks only reject requests that
are obviously incomplete before a network round trip, with the same
``Missing required field: <name>`` messages the admin panel displays.
"""

from __future__ import annotations

from typing import Any

from src.providers.backend.church_api_client import extract_results
from src.utils.errors import PayloadValidationError

MEMBER_REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "department",
    "date_of_birth",
    "marital_status",
    "gender",
    "occupation",
    "address",
    "password",
)

DEPARTMENT_REQUIRED_FIELDS = ("name", "description")
DEPARTMENT_UPDATABLE_FIELDS = ("name", "description", "leader")

DEVOTIONAL_REQUIRED_FIELDS = (
    "title",
    "bible_verse",
    "reflection",
    "prayer",
    "application_tip",
    "closing_thought",
)

TESTIMONY_FIELDS = (
    "id",
    "text",
    "images",
    "videos",
    "member_name",
    "status",
    "rejection_reason",
    "created_at",
)

MODERATION_ACTIONS = ("approve", "reject")


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def require_object(body: Any) -> dict[str, Any]:
    """Ensure the JSON body is an object."""
    if not isinstance(body, dict):
        raise PayloadValidationError("Request body must be a JSON object")
    return body


def require_fields(body: dict[str, Any], fields: tuple[str, ...], *, strict: bool = False) -> None:
    """Raise on the first missing field.

    Parameters
    ----------
    strict:
        When True every falsy value (``0``, ``False``, ``[]``) counts as
        missing, as the member registration form expects.  Otherwise only
        absent, ``None`` and ``""`` do.
    """
    for field in fields:
        value = body.get(field)
        missing = not value if strict else _is_blank(value)
        if missing:
            raise PayloadValidationError(f"Missing required field: {field}")


def normalize_leader(body: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """Coerce a department ``leader`` to an int id or ``None``.

    A full write (POST/PUT) always carries ``leader``: blank becomes ``None``.
    A partial write (PATCH) only touches ``leader`` when the client sent it.
    """
    normalized = dict(body)
    if partial and "leader" not in normalized:
        return normalized

    leader = normalized.get("leader")
    if _is_blank(leader):
        normalized["leader"] = None
        return normalized
    try:
        normalized["leader"] = int(str(leader).strip())
    except ValueError as exc:
        raise PayloadValidationError(f"Invalid leader id: {leader!r}") from exc
    return normalized


def validate_department(body: Any, *, partial: bool = False) -> dict[str, Any]:
    """Validate a department create/update payload and return the normalized copy."""
    payload = require_object(body)
    if partial:
        if not any(field in payload for field in DEPARTMENT_UPDATABLE_FIELDS):
            raise PayloadValidationError("No valid fields to update specified")
    else:
        require_fields(payload, DEPARTMENT_REQUIRED_FIELDS)
    return normalize_leader(payload, partial=partial)


def validate_member(body: Any) -> dict[str, Any]:
    payload = require_object(body)
    require_fields(payload, MEMBER_REQUIRED_FIELDS, strict=True)
    return payload


def validate_devotional(body: Any) -> dict[str, Any]:
    payload = require_object(body)
    require_fields(payload, DEVOTIONAL_REQUIRED_FIELDS)
    return payload


def validate_credentials(body: Any) -> tuple[str, str]:
    """Return ``(email, password)`` from a login body."""
    payload = body if isinstance(body, dict) else {}
    email = payload.get("email")
    password = payload.get("password")
    if not email or not password:
        raise PayloadValidationError("Email and password are required")
    return str(email), str(password)


def validate_moderation_action(body: Any) -> str:
    """Return ``"approve"`` or ``"reject"`` from a moderation body."""
    payload = body if isinstance(body, dict) else {}
    action = payload.get("action")
    if not action or not isinstance(action, str):
        raise PayloadValidationError(
            'Missing required field: action (must be "approve" or "reject")'
        )
    if action not in MODERATION_ACTIONS:
        raise PayloadValidationError('Invalid action. Must be "approve" or "reject"')
    return action


def validate_testimony_submission(text: str | None, has_image: bool, has_video: bool) -> str:
    """Check a multipart testimony submission; returns the text."""
    if not text or not text.strip():
        raise PayloadValidationError("Missing required field: text")
    if not has_image and not has_video:
        raise PayloadValidationError("At least one media file (image or video) is required")
    return text


def project_testimonies(payload: Any) -> list[dict[str, Any]]:
    """Reduce a testimony listing to the fields the admin panel shows."""
    return [
        {field: item.get(field) for field in TESTIMONY_FIELDS}
        for item in extract_results(payload)
        if isinstance(item, dict)
    ]
