"""
Integration tests — SqlProfileStore against in-memory SQLite.
"""
from __future__ import annotations

import pytest

from clubreg.models.models import Role
from clubreg.services.profile_store import ProfileExistsError, SqlProfileStore
from clubreg.session.types import ProfileRecord


def record(profile_id: str = "p-1", **kwargs) -> ProfileRecord:
    return ProfileRecord(id=profile_id, email=f"{profile_id}@club.test", **kwargs)


class TestProfileStore:

    async def test_missing_row_is_none(self, session_factory) -> None:
        assert await SqlProfileStore(session_factory).find_by_key("nobody") is None

    async def test_insert_then_find(self, session_factory) -> None:
        store = SqlProfileStore(session_factory)
        await store.insert(record(role=Role.COACH, first_name="Dana"))

        found = await store.find_by_key("p-1")

        assert found == record(role=Role.COACH, first_name="Dana")
        assert found.country == "Canada"

    async def test_duplicate_insert_raises_exists(self, session_factory) -> None:
        store = SqlProfileStore(session_factory)
        await store.insert(record())
        with pytest.raises(ProfileExistsError):
            await store.insert(record(first_name="Other"))

    async def test_unknown_role_rejected(self, session_factory) -> None:
        with pytest.raises(ValueError):
            await SqlProfileStore(session_factory).insert(record(role="superuser"))

    async def test_update_returns_fresh_record(self, session_factory) -> None:
        store = SqlProfileStore(session_factory)
        await store.insert(record())

        updated = await store.update("p-1", {"phone": "416-555-0100", "city": "Toronto"})

        assert updated.phone == "416-555-0100"
        assert (await store.find_by_key("p-1")).city == "Toronto"

    async def test_update_missing_row(self, session_factory) -> None:
        assert await SqlProfileStore(session_factory).update("nobody", {"phone": "1"}) is None

    async def test_update_rejects_non_editable_fields(self, session_factory) -> None:
        store = SqlProfileStore(session_factory)
        await store.insert(record())
        with pytest.raises(ValueError, match="email"):
            await store.update("p-1", {"email": "new@club.test"})

    async def test_update_rejects_unknown_role(self, session_factory) -> None:
        store = SqlProfileStore(session_factory)
        await store.insert(record())
        with pytest.raises(ValueError):
            await store.update("p-1", {"role": "owner"})
