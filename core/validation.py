"""
Input Validation Utilities.

Two kinds of validation live here:

- `ProfileValidator` collects field-level errors for a profile edit. It never
  raises for a bad value; it returns every problem at once so the client can
  highlight all offending fields in one pass.
- `InputValidator` holds small single-value checks (free text, colours, ids)
  that raise `ValidationError` on the first failure. These guard request
  inputs that have no form to highlight.
"""

import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Mapping, Optional

from core.logging_config import get_logger
from core.exceptions import ValidationError

logger = get_logger(__name__)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _nested(data: Mapping[str, Any], *path: str) -> Any:
    current: Any = data
    for key in path:
        if isinstance(current, Mapping):
            current = current.get(key)
        else:
            current = getattr(current, key, None)
        if current is None:
            return None
    return current


class ProfileValidator:
    """Field-level validation of profile edits"""

    EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
    PHONE_PATTERN = re.compile(r"^\+?[\d\s-]{10,}$")
    WEBSITE_PATTERN = re.compile(
        r"^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})([/\w .-]*)/?$"
    )

    # field -> where to find it when the caller did not send it top-level
    FALLBACK_PATHS = {
        "email": ("contact_info", "email"),
        "phone": ("contact_info", "mobile"),
        "website": ("social_links", "website", "url"),
    }

    @classmethod
    def _value(cls, data: Mapping[str, Any], field: str) -> Optional[Any]:
        if field in data:
            return data.get(field)
        return _nested(data, *cls.FALLBACK_PATHS[field])

    @classmethod
    def validate(cls, data: Mapping[str, Any]) -> List[FieldError]:
        """Return every field error in the profile; an empty list means valid"""
        errors: List[FieldError] = []

        if _blank(data.get("full_name")):
            errors.append(FieldError("full_name", "Full name is required"))

        email = cls._value(data, "email")
        if not _blank(email) and not cls.EMAIL_PATTERN.search(str(email)):
            errors.append(FieldError("email", "Please enter a valid email address"))

        phone = cls._value(data, "phone")
        if not _blank(phone) and not cls.PHONE_PATTERN.match(str(phone)):
            errors.append(FieldError("phone", "Please enter a valid phone number"))

        website = cls._value(data, "website")
        if not _blank(website) and not cls.WEBSITE_PATTERN.match(str(website)):
            errors.append(FieldError("website", "Please enter a valid website URL"))

        if errors:
            logger.debug(
                "Profile validation failed",
                extra={"fields": [error.field for error in errors]},
            )
        return errors


class InputValidator:
    """Single-value validation for request inputs"""

    HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

    @staticmethod
    def require_text(field: str, value: Optional[str], max_length: int = 5000) -> str:
        """Strip a required free-text value and enforce its length"""
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(field, value, "This field is required")
        value = value.strip()
        if len(value) > max_length:
            raise ValidationError(
                field, value[:50], f"Must be no more than {max_length} characters"
            )
        return value

    @staticmethod
    def validate_hex_color(field: str, value: str) -> str:
        if not isinstance(value, str) or not InputValidator.HEX_COLOR_PATTERN.match(value):
            raise ValidationError(field, value, "Must be a #RGB or #RRGGBB colour")
        return value
