"""
Session state machine — the single writer of a client's ReadinessSnapshot.

Phases
------
UNINITIALIZED → RESOLVING → READY           (normal resolution)
                          → READY_DEGRADED  (liveness timeout fired first)

Every session change bumps a generation counter. A profile resolution is
stamped with the generation and identity it started under and is dropped on
commit if either no longer matches, so overlapping resolutions settle on the
most recent session no matter which request finishes last. The liveness
timeout never cancels I/O: it only forces `ready`; a late result that is still
current upgrades the degraded snapshot afterwards.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import replace
from typing import Callable, List, Optional

from clubreg.models.models import Role
from clubreg.services.auth_backend import AuthBackend, AuthBackendError
from clubreg.services.event_stream import Subscription
from clubreg.services.profile_store import ProfileExistsError, ProfileStore, ProfileStoreError
from clubreg.session.completion import is_profile_complete
from clubreg.session.types import AuthSession, Identity, ProfileRecord, ReadinessSnapshot

logger = logging.getLogger(__name__)

ENTRY_PATH = "/"

SnapshotListener = Callable[[ReadinessSnapshot], None]


class Phase(str, enum.Enum):
    UNINITIALIZED  = "uninitialized"
    RESOLVING      = "resolving"
    READY          = "ready"
    READY_DEGRADED = "ready_degraded"


class SessionStateMachine:
    """
    Owns "who is the current user and can they proceed" for one client.

    Parameters
    ----------
    auth          : auth backend bound to this client
    profiles      : profile store
    ready_timeout : seconds a resolution may take before ready is forced
    default_role  : role for lazily created profiles without a usable hint
    admin_emails  : e-mails whose lazily created profile gets the admin role
    """

    def __init__(
        self,
        auth: AuthBackend,
        profiles: ProfileStore,
        *,
        ready_timeout: float = 8.0,
        default_role: str = Role.PARTICIPANT,
        admin_emails: tuple[str, ...] = (),
    ) -> None:
        self._auth          = auth
        self._profiles      = profiles
        self._ready_timeout = ready_timeout
        self._default_role  = default_role
        self._admin_emails  = tuple(e.lower() for e in admin_emails)

        self._snapshot   = ReadinessSnapshot.initial()
        self._phase      = Phase.UNINITIALIZED
        self._generation = 0
        self._listeners: List[SnapshotListener] = []
        self._subscription: Optional[Subscription] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timer_generation = 0
        self._deadline: Optional[float] = None
        self._lookup: Optional[asyncio.Task] = None

    # ── Read model ────────────────────────────────────────────────────────────

    @property
    def snapshot(self) -> ReadinessSnapshot:
        return self._snapshot

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def ready_timeout(self) -> float:
        return self._ready_timeout

    def watch(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call `listener` with every new snapshot; returns the unwatch function."""
        self._listeners.append(listener)

        def unwatch() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unwatch

    async def wait_ready(
        self,
        identity_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ReadinessSnapshot:
        """
        Wait until the snapshot is ready (and, if given, belongs to
        `identity_id`). Returns the latest snapshot when `timeout` runs out.
        """

        def satisfied(s: ReadinessSnapshot) -> bool:
            if not s.ready:
                return False
            return identity_id is None or (s.identity is not None and s.identity.id == identity_id)

        if satisfied(self._snapshot):
            return self._snapshot

        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def listener(s: ReadinessSnapshot) -> None:
            if satisfied(s) and not future.done():
                future.set_result(s)

        unwatch = self.watch(listener)
        try:
            return await asyncio.wait_for(future, timeout if timeout is not None else self._ready_timeout)
        except asyncio.TimeoutError:
            return self._snapshot
        finally:
            unwatch()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def bootstrap(self) -> ReadinessSnapshot:
        """
        Subscribe to session changes and resolve the current session.
        Returns within `ready_timeout` even if the auth backend never answers.
        """
        if self._phase is not Phase.UNINITIALIZED:
            return self._snapshot

        self._phase = Phase.RESOLVING
        self._subscription = self._auth.subscribe(self.on_session_changed)
        generation = self._next_generation()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._ready_timeout
        self._arm_timer(generation)
        self._lookup = asyncio.create_task(self._initial_lookup(generation))
        done, _ = await asyncio.wait({self._lookup}, timeout=self._ready_timeout)
        if not done:
            self._force_ready(self._generation)
            return self._snapshot

        self._lookup.result()
        if not self._snapshot.ready:
            # A push arrived meanwhile and its resolution is still running
            snapshot = await self.wait_ready(timeout=max(0.0, deadline - loop.time()))
            if not snapshot.ready:
                self._force_ready(self._generation)
        return self._snapshot

    def shutdown(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._cancel_timer()
        if self._lookup is not None and not self._lookup.done():
            self._lookup.cancel()
        self._lookup = None
        self._listeners.clear()

    # ── Session changes ───────────────────────────────────────────────────────

    async def on_session_changed(self, session: Optional[AuthSession]) -> None:
        """Subscription callback for sign-in, sign-out and token refresh."""
        generation = self._next_generation()
        await self._apply_session(session, generation)

    async def resolve_profile(self, identity: Identity) -> bool:
        """
        Read (or lazily create) the profile of `identity` and commit the
        completion status if `identity` is still the current one.
        """
        return await self._resolve(identity, self._generation)

    async def refresh(self) -> Optional[bool]:
        """Re-read the current profile after the client wrote to it."""
        identity = self._snapshot.identity
        if identity is None:
            return None
        return await self._resolve(identity, self._generation)

    async def sign_out(self) -> str:
        """
        Sign out at the backend and clear local state whatever the outcome.
        Returns the path the presentation layer should go to.
        """
        try:
            error = await self._auth.sign_out()
            if error:
                logger.warning("Sign-out reported an error: %s", error)
        except Exception:
            logger.warning("Sign-out failed at the auth backend; clearing local session anyway", exc_info=True)
        finally:
            generation = self._next_generation()
            self._commit_anonymous(generation)
        return ENTRY_PATH

    # ── Internals ─────────────────────────────────────────────────────────────

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int, identity_id: Optional[str]) -> bool:
        current = self._snapshot.identity
        current_id = current.id if current is not None else None
        return generation == self._generation and identity_id == current_id

    async def _initial_lookup(self, generation: int) -> None:
        try:
            session = await self._auth.get_current_session()
        except AuthBackendError:
            logger.warning("Initial session lookup failed; continuing anonymous", exc_info=True)
            session = None
        if generation != self._generation:
            logger.debug("Initial session lookup superseded by a newer session change")
            return
        await self._apply_session(session, generation)

    async def _apply_session(self, session: Optional[AuthSession], generation: int) -> None:
        if session is None:
            self._commit_anonymous(generation)
            return

        identity = session.identity
        current = self._snapshot.identity
        if current is not None and current.id == identity.id:
            # Token refresh: keep readiness, swap the cached session
            self._publish(replace(self._snapshot, session=session))
            if not self._snapshot.ready:
                # Still resolving: the new generation inherits the pending deadline
                self._arm_timer(generation, deadline=self._deadline)
        else:
            self._phase = Phase.RESOLVING
            self._publish(ReadinessSnapshot(
                identity=identity,
                session=session,
                loading=True,
                ready=False,
                profile_completed=None,
                profile=None,
            ))
            self._arm_timer(generation)
        await self._resolve(identity, generation)

    async def _resolve(self, identity: Identity, generation: int) -> bool:
        profile: Optional[ProfileRecord]
        try:
            profile = await self._profiles.find_by_key(identity.id)
            if profile is None:
                profile = await self._create_profile(identity)
            completed = profile is not None and is_profile_complete(profile)
        except ProfileStoreError:
            logger.warning("Profile resolution failed for %s; treating as incomplete", identity.id, exc_info=True)
            profile = None
            completed = False

        if not self._is_current(generation, identity.id):
            logger.debug("Discarding stale profile resolution for %s", identity.id)
            return completed

        self._cancel_timer()
        self._phase = Phase.READY
        self._publish(replace(
            self._snapshot,
            loading=False,
            ready=True,
            profile_completed=completed,
            profile=profile,
        ))
        return completed

    async def _create_profile(self, identity: Identity) -> Optional[ProfileRecord]:
        record = ProfileRecord.from_identity(identity, self._default_role, self._admin_emails)
        try:
            return await self._profiles.insert(record)
        except ProfileExistsError:
            # Another resolution for the same identity created it first
            return await self._profiles.find_by_key(identity.id)

    def _commit_anonymous(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._cancel_timer()
        self._phase = Phase.READY
        self._publish(ReadinessSnapshot.anonymous())

    def _arm_timer(self, generation: int, deadline: Optional[float] = None) -> None:
        # One deadline per generation: re-arming must not extend it
        if self._timer is not None and self._timer_generation == generation:
            return
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        if deadline is None:
            deadline = loop.time() + self._ready_timeout
        self._timer = loop.call_at(deadline, self._force_ready, generation)
        self._timer_generation = generation
        self._deadline = deadline

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _force_ready(self, generation: int) -> None:
        if self._timer_generation == generation:
            self._cancel_timer()
        if generation != self._generation or self._snapshot.ready:
            return
        logger.warning("Auth loading timed out after %.1fs; forcing ready state", self._ready_timeout)
        self._phase = Phase.READY_DEGRADED
        self._publish(replace(
            self._snapshot,
            loading=False,
            ready=True,
            profile_completed=False,
        ))

    def _publish(self, snapshot: ReadinessSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
