"""
Navigation — performs what the route guard decides.

Every screen change goes through `Navigator.navigate`: the guard is asked
about the target path against the chat's current snapshot and the resulting
action is carried out (render the screen, follow a redirect, wait out a
loading state). Screens register themselves per route pattern with
`@navigator.screen(...)` in their handler modules.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import Bot, html
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.types import InlineKeyboardMarkup, Message
from sqlalchemy.ext.asyncio import AsyncSession

from clubreg.config import settings
from clubreg.routes import build_routes
from clubreg.session.guard import Action, ActionKind, IncompleteTarget, RouteTable, decide
from clubreg.session.machine import SessionStateMachine

logger = logging.getLogger(__name__)

MAX_HOPS = 5

NEXT_PATH_KEY = "next_path"
# Where a nested form (e.g. adding a participant mid-registration) returns to
RETURN_TO_KEY = "return_to"


@dataclass
class NavContext:
    """
    Everything a screen needs to draw itself for one chat.

    message : the bot message to edit in place (callback updates); None
              means every screen is sent as a new message
    """

    bot: Bot
    chat_id: int
    state: FSMContext
    session: AsyncSession
    machine: SessionStateMachine
    message: Optional[Message] = None

    async def show(self, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
        if self.message is not None:
            try:
                await self.message.edit_text(text, reply_markup=reply_markup)
                return
            except TelegramBadRequest as exc:
                # Unchanged text, deleted message or a non-text message
                logger.debug("Edit failed in chat %s, sending instead: %s", self.chat_id, exc)
        sent = await self.bot.send_message(self.chat_id, text, reply_markup=reply_markup)
        self.message = sent


Screen = Callable[..., Awaitable[None]]
FallbackScreen = Callable[[NavContext, str], Awaitable[None]]


async def _default_not_found(ctx: NavContext, path: str) -> None:
    await ctx.show(f"🤷 Nothing lives at <code>{html.quote(path)}</code>.")


async def _default_loading(ctx: NavContext, path: str) -> None:
    await ctx.show("⏳ Loading your account…")


class Navigator:
    def __init__(
        self,
        routes: RouteTable,
        incomplete_target: IncompleteTarget = IncompleteTarget.COMPLETE_PROFILE,
        *,
        max_hops: int = MAX_HOPS,
    ) -> None:
        self.routes            = routes
        self.incomplete_target = incomplete_target
        self.max_hops          = max_hops
        self._screens: Dict[str, Screen] = {}
        self.not_found: FallbackScreen = _default_not_found
        self.loading: FallbackScreen   = _default_loading

    def screen(self, pattern: str) -> Callable[[Screen], Screen]:
        """Register the renderer of a route; path parameters arrive as keyword arguments."""
        if not any(route.pattern == pattern for route in self.routes):
            raise ValueError(f"No route with pattern {pattern!r}")

        def decorator(func: Screen) -> Screen:
            self._screens[pattern] = func
            return func

        return decorator

    def has_screen(self, pattern: str) -> bool:
        return pattern in self._screens

    def decide(self, machine: SessionStateMachine, path: str) -> Action:
        return decide(machine.snapshot, path, self.routes, self.incomplete_target)

    async def navigate(self, ctx: NavContext, path: str) -> Action:
        """
        Go to `path`, following guard redirects.

        A loading decision is shown, then waited out once (bounded by the
        machine's liveness timeout) before the guard is asked again.
        Returns the final action taken.
        """
        waited = False
        action = Action(ActionKind.NOT_FOUND)
        for _ in range(self.max_hops):
            action = self.decide(ctx.machine, path)

            if action.kind is ActionKind.RENDER:
                await self._render(ctx, path, action)
                return action

            if action.kind is ActionKind.NOT_FOUND:
                await self.not_found(ctx, path)
                return action

            if action.kind is ActionKind.SHOW_LOADING:
                await self.loading(ctx, path)
                if waited:
                    return action
                waited = True
                await ctx.machine.wait_ready()
                continue

            if action.kind is ActionKind.REDIRECT_LOGIN:
                await ctx.state.update_data(**{NEXT_PATH_KEY: action.from_path})

            logger.debug("Chat %s: %s → %s (%s)", ctx.chat_id, path, action.target, action.kind.value)
            path = action.target

        logger.error("Chat %s: redirect chain exceeded %d hops at %s", ctx.chat_id, self.max_hops, path)
        await self.not_found(ctx, path)
        return action

    async def resume(self, ctx: NavContext, default: str) -> Action:
        """Go to the path stored by a login redirect, or to `default`."""
        data = await ctx.state.get_data()
        target = data.get(NEXT_PATH_KEY) or default
        await ctx.state.update_data(**{NEXT_PATH_KEY: None})
        return await self.navigate(ctx, target)

    async def _render(self, ctx: NavContext, path: str, action: Action) -> None:
        resolved = self.routes.resolve(path)
        route = resolved[0] if resolved else None
        screen = self._screens.get(route.pattern) if route else None
        if screen is None:
            logger.error("No screen registered for %s", path)
            await self.not_found(ctx, path)
            return
        params: Dict[str, Any] = action.param_dict()
        await screen(ctx, **params)


navigator = Navigator(
    build_routes(IncompleteTarget(settings.INCOMPLETE_PROFILE_TARGET)),
    IncompleteTarget(settings.INCOMPLETE_PROFILE_TARGET),
)
