"""
Value types shared by the auth backend, the profile store and the session
state machine.

All of them are frozen dataclasses: the machine publishes a new snapshot on
every change and readers never mutate what they were handed.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from clubreg.models.models import Role


@dataclass(frozen=True)
class IdentityMetadata:
    """Optional sign-up hints: requested role and names."""

    role: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    metadata: IdentityMetadata = field(default_factory=IdentityMetadata)


@dataclass(frozen=True)
class AuthSession:
    """Opaque session token plus the identity it was issued for."""

    token: str
    identity: Identity
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at

    def expires_soon(self, margin: timedelta, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) + margin >= self.expires_at


@dataclass(frozen=True)
class ProfileRecord:
    """Detached copy of a `profiles` row."""

    id: str
    email: str
    role: str = Role.PARTICIPANT
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "Canada"

    @classmethod
    def from_identity(
        cls,
        identity: Identity,
        default_role: str = Role.PARTICIPANT,
        admin_emails: tuple[str, ...] = (),
    ) -> "ProfileRecord":
        """
        Minimal profile for an identity seen for the first time.

        The sign-up role hint is honoured only for self-service roles; admin
        is granted exclusively through the configured admin e-mail list.
        """
        hint = identity.metadata.role
        role = hint if hint in Role.SELF_SERVICE else default_role
        if identity.email.lower() in admin_emails:
            role = Role.ADMIN
        return cls(
            id=identity.id,
            email=identity.email,
            role=role,
            first_name=identity.metadata.first_name,
            last_name=identity.metadata.last_name,
        )

    def with_patch(self, patch: Dict[str, Any]) -> "ProfileRecord":
        return replace(self, **patch)

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email


@dataclass(frozen=True)
class ReadinessSnapshot:
    """
    Process-wide read model of "who is the current user and can they proceed".

    `ready` and `loading` are deliberately independent: a timed-out
    resolution ends up with loading=False, ready=True and
    profile_completed=False even though the profile was never read.
    """

    identity: Optional[Identity] = None
    session: Optional[AuthSession] = None
    loading: bool = True
    ready: bool = False
    profile_completed: Optional[bool] = None
    profile: Optional[ProfileRecord] = None

    @classmethod
    def initial(cls) -> "ReadinessSnapshot":
        return cls()

    @classmethod
    def anonymous(cls) -> "ReadinessSnapshot":
        return cls(
            identity=None,
            session=None,
            loading=False,
            ready=True,
            profile_completed=False,
            profile=None,
        )

    @property
    def role(self) -> Optional[str]:
        return self.profile.role if self.profile is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
