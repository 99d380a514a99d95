"""
Unit tests — Navigator (navigation.py).

Screens are plain async callables recording what they were asked to draw;
the bot, FSM context and state machine are minimal stand-ins, so no
Telegram traffic happens.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from clubreg.models.models import Role
from clubreg.navigation import NEXT_PATH_KEY, NavContext, Navigator
from clubreg.routes import build_routes
from clubreg.session.guard import Action, ActionKind, IncompleteTarget
from clubreg.session.types import ProfileRecord, ReadinessSnapshot
from fakes import complete_profile, make_identity, make_session


class StubMachine:
    """Exposes a snapshot; wait_ready swaps in `after_wait`."""

    def __init__(self, snapshot: ReadinessSnapshot, after_wait: Optional[ReadinessSnapshot] = None) -> None:
        self.snapshot = snapshot
        self.after_wait = after_wait
        self.waits = 0

    async def wait_ready(self, identity_id=None, timeout=None) -> ReadinessSnapshot:
        self.waits += 1
        if self.after_wait is not None:
            self.snapshot = self.after_wait
        return self.snapshot


class StubState:
    def __init__(self) -> None:
        self.data: Dict[str, Any] = {}

    async def get_data(self) -> Dict[str, Any]:
        return dict(self.data)

    async def update_data(self, **kwargs) -> Dict[str, Any]:
        self.data.update(kwargs)
        return dict(self.data)


class StubBot:
    def __init__(self) -> None:
        self.sent: List[str] = []

    async def send_message(self, chat_id: int, text: str, reply_markup=None):
        self.sent.append(text)
        return None


def snapshot_for(completed: Optional[bool], role: str = Role.PARTICIPANT) -> ReadinessSnapshot:
    if completed is None:
        return ReadinessSnapshot.anonymous()
    identity = make_identity("u1")
    profile = complete_profile(identity, role) if completed else ProfileRecord(id="u1", email="u1@club.test")
    return ReadinessSnapshot(
        identity=identity, session=make_session(identity),
        loading=False, ready=True, profile_completed=completed, profile=profile,
    )


@pytest.fixture
def visits() -> List[tuple]:
    return []


@pytest.fixture
def nav(visits) -> Navigator:
    navigator = Navigator(build_routes())

    def record(name):
        async def screen(ctx, **params):
            visits.append((name, params))
        return screen

    for pattern in ("/", "/login", "/dashboard", "/complete-profile", "/programs/{program_id}/register"):
        navigator.screen(pattern)(record(pattern))

    async def not_found(ctx, path):
        visits.append(("not_found", {"path": path}))

    async def loading(ctx, path):
        visits.append(("loading", {"path": path}))

    navigator.not_found = not_found
    navigator.loading = loading
    return navigator


def make_ctx(machine) -> NavContext:
    return NavContext(bot=StubBot(), chat_id=1, state=StubState(), session=None, machine=machine)


# ─────────────────────────── navigate() ───────────────────────────────────────

class TestNavigate:

    async def test_render_passes_params(self, nav, visits) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(True)))
        action = await nav.navigate(ctx, "/programs/9/register")

        assert action.kind is ActionKind.RENDER
        assert visits == [("/programs/{program_id}/register", {"program_id": "9"})]

    async def test_login_redirect_remembers_origin(self, nav, visits) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(None)))
        await nav.navigate(ctx, "/programs/9/register")

        assert visits == [("/login", {})]
        assert ctx.state.data[NEXT_PATH_KEY] == "/programs/9/register"

    async def test_incomplete_goes_to_completion(self, nav, visits) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(False)))
        action = await nav.navigate(ctx, "/dashboard")

        assert action.kind is ActionKind.RENDER
        assert visits == [("/complete-profile", {})]

    async def test_completed_reentry_lands_on_dashboard(self, nav, visits) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(True)))
        await nav.navigate(ctx, "/complete-profile")
        assert visits == [("/dashboard", {})]

    async def test_unknown_path(self, nav, visits) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(True)))
        action = await nav.navigate(ctx, "/nope")

        assert action.kind is ActionKind.NOT_FOUND
        assert visits == [("not_found", {"path": "/nope"})]

    async def test_route_without_screen_is_not_found(self, nav, visits) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(True)))
        await nav.navigate(ctx, "/profile")
        assert visits == [("not_found", {"path": "/profile"})]


class TestLoading:

    async def test_waits_once_then_renders(self, nav, visits) -> None:
        machine = StubMachine(ReadinessSnapshot.initial(), after_wait=snapshot_for(True))
        ctx = make_ctx(machine)

        action = await nav.navigate(ctx, "/dashboard")

        assert machine.waits == 1
        assert action.kind is ActionKind.RENDER
        assert visits == [("loading", {"path": "/dashboard"}), ("/dashboard", {})]

    async def test_still_loading_after_wait_stops(self, nav, visits) -> None:
        machine = StubMachine(ReadinessSnapshot.initial())
        ctx = make_ctx(machine)

        action = await nav.navigate(ctx, "/dashboard")

        assert machine.waits == 1
        assert action.kind is ActionKind.SHOW_LOADING
        assert [v[0] for v in visits] == ["loading", "loading"]


class TestResume:

    async def test_resume_replays_origin_once(self, nav, visits) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(True)))
        ctx.state.data[NEXT_PATH_KEY] = "/programs/3/register"

        await nav.resume(ctx, "/dashboard")
        await nav.resume(ctx, "/dashboard")

        assert visits == [
            ("/programs/{program_id}/register", {"program_id": "3"}),
            ("/dashboard", {}),
        ]
        assert ctx.state.data[NEXT_PATH_KEY] is None


class TestLimits:

    async def test_redirect_chain_is_capped(self, visits) -> None:
        class LoopingNavigator(Navigator):
            def decide(self, machine, path):
                return Action(ActionKind.REDIRECT_DASHBOARD, target="/dashboard")

        navigator = LoopingNavigator(build_routes(), max_hops=3)

        async def not_found(ctx, path):
            visits.append(("not_found", {"path": path}))

        navigator.not_found = not_found
        action = await navigator.navigate(make_ctx(StubMachine(snapshot_for(True))), "/profile")

        assert action.kind is ActionKind.REDIRECT_DASHBOARD
        assert visits == [("not_found", {"path": "/dashboard"})]

    def test_unknown_pattern_cannot_register(self) -> None:
        navigator = Navigator(build_routes(), IncompleteTarget.COMPLETE_PROFILE)
        with pytest.raises(ValueError):
            navigator.screen("/does-not-exist")

    def test_has_screen(self, nav) -> None:
        assert nav.has_screen("/dashboard")
        assert not nav.has_screen("/admin")


class TestNavContext:

    async def test_show_sends_without_message(self) -> None:
        ctx = make_ctx(StubMachine(snapshot_for(True)))
        await ctx.show("hello")
        assert ctx.bot.sent == ["hello"]
