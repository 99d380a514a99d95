"""
Test doubles for the auth backend and the profile store, plus value helpers.

The fakes implement the same protocols as the SQL implementations and add
knobs (gates, injected errors) to drive races and timeouts deterministically.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from clubreg.services.event_stream import SessionEventStream, Subscription
from clubreg.services.profile_store import ProfileExistsError, ProfileStoreError
from clubreg.session.types import AuthSession, Identity, IdentityMetadata, ProfileRecord


# ── Value helpers ─────────────────────────────────────────────────────────────

def make_identity(
    identity_id: str = "user-1",
    email: Optional[str] = None,
    role: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Identity:
    return Identity(
        id=identity_id,
        email=email or f"{identity_id}@club.test",
        metadata=IdentityMetadata(role=role, first_name=first_name, last_name=last_name),
    )


def make_session(identity: Identity, token: str = "token-1", ttl: timedelta = timedelta(days=1)) -> AuthSession:
    return AuthSession(token=token, identity=identity, expires_at=datetime.utcnow() + ttl)


def complete_profile(identity: Identity, role: str = "participant") -> ProfileRecord:
    return ProfileRecord(
        id=identity.id,
        email=identity.email,
        role=role,
        first_name="Jordan",
        last_name="Smith",
        phone="416-555-0100",
    )


async def until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until `predicate()` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


# ── Fakes ─────────────────────────────────────────────────────────────────────

class FakeAuth:
    """
    In-memory auth backend.

    lookup_gate   : when set, get_current_session waits for it
    lookup_error  : raised by get_current_session
    sign_out_error: raised by sign_out
    """

    def __init__(self, current: Optional[AuthSession] = None) -> None:
        self.stream = SessionEventStream()
        self.current = current
        self.lookup_gate: Optional[asyncio.Event] = None
        self.lookup_error: Optional[Exception] = None
        self.sign_out_error: Optional[Exception] = None
        self.sign_out_calls = 0

    def subscribe(self, callback) -> Subscription:
        return self.stream.subscribe(callback)

    async def get_current_session(self) -> Optional[AuthSession]:
        if self.lookup_gate is not None:
            await self.lookup_gate.wait()
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.current

    async def sign_in(self, email: str, password: str):
        session = make_session(make_identity(email.split("@")[0], email))
        self.emit(session)
        return session, ""

    async def sign_up(self, email: str, password: str, metadata: IdentityMetadata):
        identity = Identity(id=email.split("@")[0], email=email, metadata=metadata)
        session = make_session(identity)
        self.emit(session)
        return session, ""

    async def sign_out(self) -> str:
        self.sign_out_calls += 1
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.emit(None)
        return ""

    def emit(self, session: Optional[AuthSession]) -> None:
        self.current = session
        self.stream.publish(session)


class FakeProfiles:
    """
    In-memory profile store.

    gates          : profile id → Event the read of that profile waits for
    fail_reads     : every find_by_key raises ProfileStoreError
    created_by_peer: inserted on the first insert, which then raises
                     ProfileExistsError (another writer won the race)
    """

    def __init__(self, *records: ProfileRecord) -> None:
        self.rows: Dict[str, ProfileRecord] = {r.id: r for r in records}
        self.gates: Dict[str, asyncio.Event] = {}
        self.fail_reads = False
        self.created_by_peer: Optional[ProfileRecord] = None
        self.inserted: List[ProfileRecord] = []
        self.reads = 0

    async def find_by_key(self, profile_id: str) -> Optional[ProfileRecord]:
        self.reads += 1
        gate = self.gates.get(profile_id)
        if gate is not None:
            await gate.wait()
        if self.fail_reads:
            raise ProfileStoreError("store unavailable")
        return self.rows.get(profile_id)

    async def insert(self, record: ProfileRecord) -> ProfileRecord:
        if self.created_by_peer is not None:
            peer, self.created_by_peer = self.created_by_peer, None
            self.rows[peer.id] = peer
            raise ProfileExistsError(peer.id)
        if record.id in self.rows:
            raise ProfileExistsError(record.id)
        self.rows[record.id] = record
        self.inserted.append(record)
        return record

    async def update(self, profile_id: str, patch: dict) -> Optional[ProfileRecord]:
        row = self.rows.get(profile_id)
        if row is None:
            return None
        self.rows[profile_id] = row.with_patch(patch)
        return self.rows[profile_id]


