"""
The one rule that decides whether a profile is complete.

Every screen and the state machine go through `is_profile_complete`; no
handler re-implements its own field checks.
"""
from __future__ import annotations

from typing import Optional

from clubreg.session.types import ProfileRecord

# Fields that must be non-blank before the user may use protected screens
REQUIRED_PROFILE_FIELDS: tuple[str, ...] = ("first_name", "last_name", "phone")


def missing_profile_fields(profile: Optional[ProfileRecord]) -> list[str]:
    """Names of required fields that are empty (all of them for no profile)."""
    if profile is None:
        return list(REQUIRED_PROFILE_FIELDS)
    missing = []
    for name in REQUIRED_PROFILE_FIELDS:
        value = getattr(profile, name, None)
        if value is None or not str(value).strip():
            missing.append(name)
    return missing


def is_profile_complete(profile: Optional[ProfileRecord]) -> bool:
    return not missing_profile_fields(profile)
