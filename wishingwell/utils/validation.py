"""
Field validators.

Each validator is a pure function of its input and returns a list of
``FieldError`` (empty when the value is fine). ``ValidationResult`` collects
them so a request reports every bad field at once instead of the first one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from wishingwell import settings
from wishingwell.errors import ValidationError

# "lat,lon" e.g. "40.7128,-74.0060"
LOCATION_RE = re.compile(
    r"^[-+]?(?:90(?:\.0+)?|[1-8]?\d(?:\.\d+)?)"
    r",\s*"
    r"[-+]?(?:180(?:\.0+)?|(?:1[0-7]\d|[1-9]?\d)(?:\.\d+)?)$"
)
_WORD_RE = re.compile(r"[a-z0-9']+")


@dataclass(frozen=True)
class FieldError:
    field: str
    error: str
    acceptable_range: Optional[Tuple[int, int]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"field": self.field, "error": self.error}
        if self.acceptable_range is not None:
            d["acceptable_range"] = list(self.acceptable_range)
        return d


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)

    def add(self, errs: Iterable[FieldError]) -> "ValidationResult":
        self.errors.extend(errs)
        return self

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationError(errors=[e.to_dict() for e in self.errors])


def contains_banned_word(text: str, banned: Sequence[str] | None = None) -> bool:
    banned = settings.BANNED_WORDS if banned is None else banned
    words = set(_WORD_RE.findall((text or "").lower()))
    return any(w in words for w in banned)


def _length(name: str, value: Any, lo: int, hi: int) -> List[FieldError]:
    if not isinstance(value, str):
        return [FieldError(name, f"{name.upper()}_INVALID_LENGTH", (lo, hi))]
    if not lo <= len(value) <= hi:
        return [FieldError(name, f"{name.upper()}_INVALID_LENGTH", (lo, hi))]
    return []


def _words(name: str, value: Any, banned: Sequence[str] | None) -> List[FieldError]:
    if isinstance(value, str) and contains_banned_word(value, banned):
        return [FieldError(name, f"{name.upper()}_FORBIDDEN_WORD")]
    return []


def validate_title(title: Any, banned: Sequence[str] | None = None) -> List[FieldError]:
    errs = _length("title", title, settings.TITLE_MIN_LENGTH, settings.TITLE_MAX_LENGTH)
    return errs or _words("title", title, banned)


def validate_description(
    description: Any, banned: Sequence[str] | None = None
) -> List[FieldError]:
    errs = _length(
        "description",
        description,
        settings.DESCRIPTION_MIN_LENGTH,
        settings.DESCRIPTION_MAX_LENGTH,
    )
    return errs or _words("description", description, banned)


def validate_location(location: Any) -> List[FieldError]:
    errs = _length("location", location, 1, settings.LOCATION_MAX_LENGTH)
    if errs:
        return errs
    if not LOCATION_RE.match(location.strip()):
        return [FieldError("location", "LOCATION_INVALID_STRING_FORMAT")]
    return []


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def validate_funding_target(target: Any, max_cents: int | None = None) -> List[FieldError]:
    max_cents = settings.FUNDING_TARGET_MAX_CENTS if max_cents is None else max_cents
    if not _is_int(target):
        return [FieldError("target_amount", "FUNDINGTARGET_INVALID_NUMBER")]
    if not 0 < target <= max_cents:
        return [FieldError("target_amount", "FUNDINGTARGET_INVALID_VALUE", (1, max_cents))]
    return []


def validate_duration(days: Any) -> List[FieldError]:
    lo, hi = settings.DURATION_MIN_DAYS, settings.DURATION_MAX_DAYS
    if not _is_int(days) or not lo <= days <= hi:
        return [FieldError("duration_days", "EXPIRATION_INVALID_LENGTH", (lo, hi))]
    return []


def validate_message(text: Any, banned: Sequence[str] | None = None) -> List[FieldError]:
    if text is None:
        return []
    errs = _length("message", text, 0, settings.MESSAGE_MAX_LENGTH)
    return errs or _words("message", text, banned)


def coerce_int(value: Any) -> Any:
    """Turn "500" / 500.0 into 500; leave anything else untouched for the validators."""
    if _is_int(value):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if re.fullmatch(r"[-+]?\d+", s):
            return int(s)
    return value
