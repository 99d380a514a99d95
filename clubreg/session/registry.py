"""
One session state machine per Telegram chat.

Each chat is an independent client with its own auth backend view, its own
snapshot and its own change subscription. Machines are built and
bootstrapped on the chat's first update and shut down with the bot.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clubreg.config import Settings
from clubreg.models.models import Role
from clubreg.services.auth_backend import DEFAULT_PASSWORD_ITERATIONS, AuthBackendError, SqlAuthBackend
from clubreg.services.profile_store import SqlProfileStore
from clubreg.session.machine import SessionStateMachine

logger = logging.getLogger(__name__)


@dataclass
class Client:
    client_id: int
    auth: SqlAuthBackend
    profiles: SqlProfileStore
    machine: SessionStateMachine


class SessionRegistry:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        ready_timeout: float = 8.0,
        default_role: str = Role.PARTICIPANT,
        admin_emails: tuple[str, ...] = (),
        session_ttl: timedelta = timedelta(days=30),
        refresh_margin: timedelta = timedelta(hours=24),
        password_iterations: int = DEFAULT_PASSWORD_ITERATIONS,
        password_min_length: int = 6,
    ) -> None:
        self._factory             = session_factory
        self._ready_timeout       = ready_timeout
        self._default_role        = default_role
        self._admin_emails        = admin_emails
        self._session_ttl         = session_ttl
        self._refresh_margin      = refresh_margin
        self._password_iterations = password_iterations
        self._password_min_length = password_min_length
        self._clients: Dict[int, Client] = {}

    @classmethod
    def from_settings(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> "SessionRegistry":
        return cls(
            session_factory,
            ready_timeout=settings.AUTH_READY_TIMEOUT,
            default_role=settings.DEFAULT_ROLE,
            admin_emails=tuple(settings.admin_emails_list),
            session_ttl=timedelta(days=settings.SESSION_TTL_DAYS),
            refresh_margin=timedelta(hours=settings.SESSION_REFRESH_MARGIN_HOURS),
            password_iterations=settings.PASSWORD_ITERATIONS,
            password_min_length=settings.PASSWORD_MIN_LENGTH,
        )

    def __len__(self) -> int:
        return len(self._clients)

    def peek(self, client_id: int) -> Optional[Client]:
        return self._clients.get(client_id)

    async def get(self, client_id: int) -> Client:
        """Return the chat's client, building and bootstrapping it on first use."""
        client = self._clients.get(client_id)
        if client is not None:
            return client

        auth = SqlAuthBackend(
            self._factory,
            client_id,
            session_ttl=self._session_ttl,
            password_iterations=self._password_iterations,
            password_min_length=self._password_min_length,
        )
        profiles = SqlProfileStore(self._factory)
        machine = SessionStateMachine(
            auth,
            profiles,
            ready_timeout=self._ready_timeout,
            default_role=self._default_role,
            admin_emails=self._admin_emails,
        )
        client = Client(client_id=client_id, auth=auth, profiles=profiles, machine=machine)
        # Stored before bootstrapping so concurrent updates share one machine
        self._clients[client_id] = client
        await machine.bootstrap()
        logger.debug("Client %s bootstrapped in phase %s", client_id, machine.phase.value)
        return client

    async def refresh_if_expiring(self, client: Client) -> None:
        """
        Rotate the chat's token when it is about to expire. A session that
        can no longer be refreshed is cleared from the chat's snapshot.
        """
        session = client.machine.snapshot.session
        if session is None or not session.expires_soon(self._refresh_margin):
            return
        try:
            rotated = await client.auth.refresh_session()
        except AuthBackendError:
            logger.warning("Token refresh failed for chat %s", client.client_id, exc_info=True)
            if not session.is_expired():
                return
            rotated = None
        if rotated is None:
            logger.info("Session for chat %s expired; continuing anonymous", client.client_id)
            await client.machine.on_session_changed(None)

    def shutdown(self) -> None:
        for client in self._clients.values():
            client.machine.shutdown()
        self._clients.clear()
