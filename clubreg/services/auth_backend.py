"""
Auth backend — e-mail/password accounts and per-chat session tokens.

One `SqlAuthBackend` instance represents one client (a Telegram chat): it
knows which chat it issues sessions to and publishes every session change of
that chat on its own `SessionEventStream`.

Expected outcomes (wrong password, e-mail taken) come back as an error
string next to the result, the same `(obj, error)` shape the registration
service uses. Storage failures raise `AuthBackendError`.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import os
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional, Protocol, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from clubreg.models.models import Account, AccountSession
from clubreg.services.event_stream import SessionCallback, SessionEventStream, Subscription
from clubreg.session.types import AuthSession, Identity, IdentityMetadata

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD_ITERATIONS = 200_000


class AuthBackendError(Exception):
    """The auth backend could not reach or update its storage."""


class AuthBackend(Protocol):
    async def get_current_session(self) -> Optional[AuthSession]: ...

    def subscribe(self, callback: SessionCallback) -> Subscription: ...

    async def sign_in(self, email: str, password: str) -> Tuple[Optional[AuthSession], str]: ...

    async def sign_up(
        self, email: str, password: str, metadata: IdentityMetadata
    ) -> Tuple[Optional[AuthSession], str]: ...

    async def sign_out(self) -> str: ...


# ── Password hashing ──────────────────────────────────────────────────────────

def hash_password(password: str, salt_hex: str, iterations: int = DEFAULT_PASSWORD_ITERATIONS) -> str:
    salt = bytes.fromhex(salt_hex)
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations).hex()


def make_password(password: str, iterations: int = DEFAULT_PASSWORD_ITERATIONS) -> Tuple[str, str]:
    salt_hex = os.urandom(16).hex()
    return salt_hex, hash_password(password, salt_hex, iterations)


def verify_password(
    password: str,
    salt_hex: str,
    expected_hash: str,
    iterations: int = DEFAULT_PASSWORD_ITERATIONS,
) -> bool:
    candidate = hash_password(password, salt_hex, iterations)
    return hmac.compare_digest(candidate, expected_hash)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ── Backend ───────────────────────────────────────────────────────────────────

class SqlAuthBackend:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client_id: int,
        *,
        session_ttl: timedelta = timedelta(days=30),
        password_iterations: int = DEFAULT_PASSWORD_ITERATIONS,
        password_min_length: int = 6,
    ) -> None:
        self._factory     = session_factory
        self._client_id   = client_id
        self._ttl         = session_ttl
        self._iterations  = password_iterations
        self._min_length  = password_min_length
        self._events      = SessionEventStream()

    @property
    def client_id(self) -> int:
        return self._client_id

    @property
    def events(self) -> SessionEventStream:
        return self._events

    def subscribe(self, callback: SessionCallback) -> Subscription:
        return self._events.subscribe(callback)

    async def get_current_session(self) -> Optional[AuthSession]:
        """Newest unexpired, unrevoked session issued to this chat."""
        try:
            async with self._factory() as db:
                row = await self._active_session_row(db)
        except SQLAlchemyError as exc:
            raise AuthBackendError("Session lookup failed") from exc
        return _to_auth_session(row) if row is not None else None

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: IdentityMetadata,
    ) -> Tuple[Optional[AuthSession], str]:
        email = normalize_email(email)
        if len(password) < self._min_length:
            return None, f"Password must be at least {self._min_length} characters."

        salt_hex, pw_hash = make_password(password, self._iterations)
        try:
            async with self._factory() as db:
                existing = await db.execute(select(Account.id).where(Account.email == email))
                if existing.scalar_one_or_none() is not None:
                    return None, "An account with this e-mail already exists."

                account = Account(
                    id=str(uuid.uuid4()),
                    email=email,
                    password_salt=salt_hex,
                    password_hash=pw_hash,
                    role_hint=metadata.role,
                    first_name=metadata.first_name,
                    last_name=metadata.last_name,
                )
                db.add(account)
                try:
                    await db.flush()
                except IntegrityError:
                    await db.rollback()
                    return None, "An account with this e-mail already exists."

                auth_session = await self._issue(db, account)
                await db.commit()
        except SQLAlchemyError as exc:
            raise AuthBackendError("Sign-up failed") from exc

        logger.info("Account %s signed up from chat %s", account.id, self._client_id)
        self._events.publish(auth_session)
        return auth_session, ""

    async def sign_in(self, email: str, password: str) -> Tuple[Optional[AuthSession], str]:
        email = normalize_email(email)
        try:
            async with self._factory() as db:
                result = await db.execute(select(Account).where(Account.email == email))
                account = result.scalar_one_or_none()
                if account is None or not verify_password(
                    password, account.password_salt, account.password_hash, self._iterations
                ):
                    return None, "Invalid e-mail or password."

                auth_session = await self._issue(db, account)
                await db.commit()
        except SQLAlchemyError as exc:
            raise AuthBackendError("Sign-in failed") from exc

        logger.info("Account %s signed in from chat %s", account.id, self._client_id)
        self._events.publish(auth_session)
        return auth_session, ""

    async def sign_out(self) -> str:
        try:
            async with self._factory() as db:
                await self._revoke_all(db)
                await db.commit()
        except SQLAlchemyError as exc:
            raise AuthBackendError("Sign-out failed") from exc

        self._events.publish(None)
        return ""

    async def refresh_session(self) -> Optional[AuthSession]:
        """Rotate the current token and extend its lifetime."""
        try:
            async with self._factory() as db:
                row = await self._active_session_row(db)
                if row is None:
                    auth_session = None
                else:
                    auth_session = await self._issue(db, row.account)
                await db.commit()
        except SQLAlchemyError as exc:
            raise AuthBackendError("Token refresh failed") from exc

        if auth_session is None:
            logger.info("No live session to refresh for chat %s; signing out locally", self._client_id)
        else:
            logger.debug("Session refreshed for chat %s", self._client_id)
        self._events.publish(auth_session)
        return auth_session

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _active_session_row(self, db: AsyncSession) -> Optional[AccountSession]:
        result = await db.execute(
            select(AccountSession)
            .options(selectinload(AccountSession.account))
            .where(
                AccountSession.client_id == self._client_id,
                AccountSession.revoked_at.is_(None),
                AccountSession.expires_at > datetime.utcnow(),
            )
            .order_by(AccountSession.expires_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _revoke_all(self, db: AsyncSession) -> None:
        await db.execute(
            update(AccountSession)
            .where(
                AccountSession.client_id == self._client_id,
                AccountSession.revoked_at.is_(None),
            )
            .values(revoked_at=datetime.utcnow())
        )

    async def _issue(self, db: AsyncSession, account: Account) -> AuthSession:
        """One live session per chat: revoke the previous ones, then mint a token."""
        await self._revoke_all(db)
        row = AccountSession(
            token=secrets.token_urlsafe(48),
            account_id=account.id,
            client_id=self._client_id,
            expires_at=datetime.utcnow() + self._ttl,
        )
        db.add(row)
        await db.flush()
        return AuthSession(
            token=row.token,
            identity=_to_identity(account),
            expires_at=row.expires_at,
        )


def _to_identity(account: Account) -> Identity:
    return Identity(
        id=account.id,
        email=account.email,
        metadata=IdentityMetadata(
            role=account.role_hint,
            first_name=account.first_name,
            last_name=account.last_name,
        ),
    )


def _to_auth_session(row: AccountSession) -> AuthSession:
    return AuthSession(
        token=row.token,
        identity=_to_identity(row.account),
        expires_at=row.expires_at,
    )
