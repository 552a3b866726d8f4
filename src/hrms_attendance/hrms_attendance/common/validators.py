from __future__ import annotations

from ..core.exceptions import ValidationError
from .datetime_utils import parse_hhmm


def require_hhmm(value: str, field_name: str) -> str:
    """Validate an ``HH:MM`` input field and return it zero-padded."""
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    t = parse_hhmm(value)
    return f"{t.hour:02d}:{t.minute:02d}"
