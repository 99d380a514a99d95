"""
Integration tests — SqlAuthBackend against in-memory SQLite.

Coverage:
  - Password hashing helpers
  - Sign-up / sign-in / sign-out and their error strings
  - Per-chat sessions: isolation, one live token per chat, refresh rotation
  - Session-change events published on every transition
"""
from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

from clubreg.services.auth_backend import (
    SqlAuthBackend,
    hash_password,
    make_password,
    normalize_email,
    verify_password,
)
from clubreg.session.types import AuthSession, IdentityMetadata

ITERATIONS = 1000


def backend(session_factory, client_id: int = 100, **kwargs) -> SqlAuthBackend:
    kwargs.setdefault("password_iterations", ITERATIONS)
    return SqlAuthBackend(session_factory, client_id, **kwargs)


async def sign_up(auth: SqlAuthBackend, email: str = "Coach@Club.test", password: str = "secret1"):
    return await auth.sign_up(
        email, password, IdentityMetadata(role="coach", first_name="Dana", last_name="Lee")
    )


# ─────────────────────────── Passwords ────────────────────────────────────────

class TestPasswords:

    def test_verify_roundtrip(self) -> None:
        salt, digest = make_password("hunter22", ITERATIONS)
        assert verify_password("hunter22", salt, digest, ITERATIONS)
        assert not verify_password("hunter23", salt, digest, ITERATIONS)

    def test_salt_changes_hash(self) -> None:
        assert hash_password("pw", "00" * 16, ITERATIONS) != hash_password("pw", "11" * 16, ITERATIONS)

    def test_normalize_email(self) -> None:
        assert normalize_email("  Me@Example.COM ") == "me@example.com"


# ─────────────────────────── Sign-up / sign-in ────────────────────────────────

class TestSignUp:

    async def test_sign_up_issues_session(self, session_factory) -> None:
        auth = backend(session_factory)
        session, error = await sign_up(auth)

        assert error == ""
        assert session.identity.email == "coach@club.test"
        assert session.identity.metadata == IdentityMetadata(role="coach", first_name="Dana", last_name="Lee")
        current = await auth.get_current_session()
        assert current.token == session.token

    async def test_duplicate_email_rejected(self, session_factory) -> None:
        auth = backend(session_factory)
        await sign_up(auth)
        session, error = await sign_up(backend(session_factory, 200), email="coach@club.test ")

        assert session is None
        assert "already exists" in error

    async def test_short_password_rejected(self, session_factory) -> None:
        auth = backend(session_factory, password_min_length=8)
        session, error = await sign_up(auth, password="short")

        assert session is None
        assert "at least 8" in error
        assert await auth.get_current_session() is None


class TestSignIn:

    async def test_wrong_password(self, session_factory) -> None:
        await sign_up(backend(session_factory))
        session, error = await backend(session_factory, 200).sign_in("coach@club.test", "nope!!")

        assert session is None
        assert error == "Invalid e-mail or password."

    async def test_unknown_email_same_message(self, session_factory) -> None:
        session, error = await backend(session_factory).sign_in("ghost@club.test", "whatever")
        assert session is None
        assert error == "Invalid e-mail or password."

    async def test_sessions_are_per_chat(self, session_factory) -> None:
        chat_a = backend(session_factory, 1)
        chat_b = backend(session_factory, 2)
        await sign_up(chat_a)

        assert await chat_b.get_current_session() is None
        session, _ = await chat_b.sign_in("COACH@club.test", "secret1")
        assert (await chat_b.get_current_session()).token == session.token
        assert await chat_a.get_current_session() is not None

    async def test_new_sign_in_revokes_previous_token(self, session_factory) -> None:
        auth = backend(session_factory)
        first, _ = await sign_up(auth)
        second, _ = await auth.sign_in("coach@club.test", "secret1")

        assert first.token != second.token
        assert (await auth.get_current_session()).token == second.token

    async def test_expired_session_is_not_current(self, session_factory) -> None:
        auth = backend(session_factory, session_ttl=timedelta(seconds=-1))
        await sign_up(auth)
        assert await auth.get_current_session() is None


# ─────────────────────────── Sign-out / refresh ───────────────────────────────

class TestSignOutAndRefresh:

    async def test_sign_out_revokes(self, session_factory) -> None:
        auth = backend(session_factory)
        await sign_up(auth)

        assert await auth.sign_out() == ""
        assert await auth.get_current_session() is None

    async def test_refresh_rotates_token(self, session_factory) -> None:
        auth = backend(session_factory)
        first, _ = await sign_up(auth)

        rotated = await auth.refresh_session()

        assert rotated.token != first.token
        assert rotated.identity.id == first.identity.id
        assert (await auth.get_current_session()).token == rotated.token

    async def test_refresh_without_session(self, session_factory) -> None:
        assert await backend(session_factory).refresh_session() is None

    async def test_refresh_after_expiry_publishes_sign_out(self, session_factory) -> None:
        auth = backend(session_factory, session_ttl=timedelta(seconds=-1))
        seen: List[Optional[AuthSession]] = []

        async def on_change(session):
            seen.append(session)

        auth.subscribe(on_change)
        await sign_up(auth)

        assert await auth.refresh_session() is None
        await auth.events.drain()
        assert seen[-1] is None


# ─────────────────────────── Events ───────────────────────────────────────────

class TestEvents:

    async def test_every_transition_is_published_in_order(self, session_factory) -> None:
        auth = backend(session_factory)
        seen: List[Optional[AuthSession]] = []

        async def on_change(session):
            seen.append(session)

        sub = auth.subscribe(on_change)
        signed_up, _ = await sign_up(auth)
        refreshed = await auth.refresh_session()
        await auth.sign_out()
        await auth.events.drain()

        assert [s.token if s else None for s in seen] == [signed_up.token, refreshed.token, None]
        sub.unsubscribe()
        assert auth.events.subscriber_count == 0

    async def test_failed_sign_in_publishes_nothing(self, session_factory) -> None:
        auth = backend(session_factory)
        seen = []

        async def on_change(session):
            seen.append(session)

        auth.subscribe(on_change)
        await auth.sign_in("ghost@club.test", "whatever")
        await auth.events.drain()

        assert seen == []
