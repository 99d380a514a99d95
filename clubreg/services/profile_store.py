"""
Profile store — keyed read/insert/update of `profiles` rows.

Returns detached `ProfileRecord` values so callers never hold an ORM object
past the lifetime of the DB session that loaded it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clubreg.models.models import Profile, Role
from clubreg.session.types import ProfileRecord

logger = logging.getLogger(__name__)

# Columns a caller may change through `update`
EDITABLE_FIELDS = frozenset({
    "role", "first_name", "last_name", "phone",
    "street_address", "city", "province", "postal_code", "country",
})


class ProfileStoreError(Exception):
    """The profile store failed for a reason other than "row missing"."""


class ProfileExistsError(ProfileStoreError):
    """Insert hit an existing row for the same key."""


class ProfileStore(Protocol):
    async def find_by_key(self, profile_id: str) -> Optional[ProfileRecord]: ...

    async def insert(self, record: ProfileRecord) -> ProfileRecord: ...

    async def update(self, profile_id: str, patch: Dict[str, Any]) -> Optional[ProfileRecord]: ...


class SqlProfileStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = session_factory

    async def find_by_key(self, profile_id: str) -> Optional[ProfileRecord]:
        try:
            async with self._factory() as db:
                row = await db.get(Profile, profile_id)
        except SQLAlchemyError as exc:
            raise ProfileStoreError(f"Could not read profile {profile_id}") from exc
        return to_record(row) if row is not None else None

    async def insert(self, record: ProfileRecord) -> ProfileRecord:
        if record.role not in Role.ALL:
            raise ValueError(f"Unknown role: {record.role!r}")
        try:
            async with self._factory() as db:
                row = Profile(
                    id=record.id,
                    email=record.email,
                    role=record.role,
                    first_name=record.first_name,
                    last_name=record.last_name,
                    phone=record.phone,
                    street_address=record.street_address,
                    city=record.city,
                    province=record.province,
                    postal_code=record.postal_code,
                    country=record.country,
                )
                db.add(row)
                await db.commit()
        except IntegrityError as exc:
            raise ProfileExistsError(f"Profile {record.id} already exists") from exc
        except SQLAlchemyError as exc:
            raise ProfileStoreError(f"Could not create profile {record.id}") from exc

        logger.info("Profile %s created with role %s", record.id, record.role)
        return record

    async def update(self, profile_id: str, patch: Dict[str, Any]) -> Optional[ProfileRecord]:
        """Apply `patch` and return the fresh record; None if the row is missing."""
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if "role" in patch and patch["role"] not in Role.ALL:
            raise ValueError(f"Unknown role: {patch['role']!r}")

        try:
            async with self._factory() as db:
                result = await db.execute(select(Profile).where(Profile.id == profile_id))
                row = result.scalar_one_or_none()
                if row is None:
                    return None
                for name, value in patch.items():
                    setattr(row, name, value)
                await db.commit()
                record = to_record(row)
        except SQLAlchemyError as exc:
            raise ProfileStoreError(f"Could not update profile {profile_id}") from exc
        return record


def to_record(row: Profile) -> ProfileRecord:
    return ProfileRecord(
        id=row.id,
        email=row.email,
        role=row.role,
        first_name=row.first_name,
        last_name=row.last_name,
        phone=row.phone,
        street_address=row.street_address,
        city=row.city,
        province=row.province,
        postal_code=row.postal_code,
        country=row.country,
    )
