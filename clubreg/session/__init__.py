"""
Session/profile gating core.

The state machine and client registry depend on the services package and
are imported from their own modules (`clubreg.session.machine`,
`clubreg.session.registry`).
"""
from clubreg.session.types import (
    AuthSession, Identity, IdentityMetadata, ProfileRecord, ReadinessSnapshot,
)
from clubreg.session.completion import (
    REQUIRED_PROFILE_FIELDS, is_profile_complete, missing_profile_fields,
)
from clubreg.session.guard import (
    COMPLETE_PROFILE_PATH, DASHBOARD_PATH, LOGIN_PATH,
    Action, ActionKind, IncompleteTarget, Route, RouteTable, decide, normalize_path,
)

__all__ = [
    # values
    "AuthSession", "Identity", "IdentityMetadata", "ProfileRecord", "ReadinessSnapshot",
    # completion rule
    "REQUIRED_PROFILE_FIELDS", "is_profile_complete", "missing_profile_fields",
    # guard
    "COMPLETE_PROFILE_PATH", "DASHBOARD_PATH", "LOGIN_PATH",
    "Action", "ActionKind", "IncompleteTarget", "Route", "RouteTable",
    "decide", "normalize_path",
]
