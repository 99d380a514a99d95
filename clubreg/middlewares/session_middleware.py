"""
Session middleware and guard filters.

Attaches the chat's session client to handler data for all updates:
`client`, `machine`, `snapshot`, `is_admin` and a ready-made `nav` context.
Action callbacks (buttons that write something) are protected with the
`CanOpen` filter below, which asks the route guard the same question a
navigation to that path would.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware
from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message, TelegramObject, Update

from clubreg.navigation import NavContext, Navigator, navigator as default_navigator
from clubreg.session.guard import ActionKind
from clubreg.session.machine import SessionStateMachine
from clubreg.session.registry import SessionRegistry

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseMiddleware):
    """
    Must run after DatabaseMiddleware: the `nav` context carries the
    update's database session.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        chat = data.get("event_chat")
        if chat is None:
            return await handler(event, data)

        client = await self._registry.get(chat.id)
        await self._registry.refresh_if_expiring(client)

        snapshot = client.machine.snapshot
        data["client"]   = client
        data["machine"]  = client.machine
        data["snapshot"] = snapshot
        data["is_admin"] = snapshot.is_admin
        data["nav"] = NavContext(
            bot=data["bot"],
            chat_id=chat.id,
            state=data["state"],
            session=data["session"],
            machine=client.machine,
            message=_editable_message(event),
        )
        return await handler(event, data)


def _editable_message(event: TelegramObject) -> Optional[Message]:
    """Callback updates edit the message that carried the button."""
    if isinstance(event, Update) and event.callback_query is not None:
        message = event.callback_query.message
        if isinstance(message, Message):
            return message
    return None


# ── Reusable filter ──────────────────────────────────────────────────────────

class CanOpen(BaseFilter):
    """
    Passes when the guard would render `path` for this chat. Otherwise the
    guard's decision is carried out (login, profile completion, dashboard)
    and the handler is skipped.

    With redirect=False the filter only reports; use that form on routers,
    where it sees every update the earlier routers left unhandled.
    """

    def __init__(
        self,
        path: str,
        navigator: Optional[Navigator] = None,
        redirect: bool = True,
    ) -> None:
        self.path       = path
        self.redirect   = redirect
        self._navigator = navigator or default_navigator

    async def __call__(
        self,
        event: Message | CallbackQuery,
        machine: SessionStateMachine,
        nav: NavContext,
    ) -> bool:
        action = self._navigator.decide(machine, self.path)
        if action.kind is ActionKind.RENDER:
            return True
        if not self.redirect:
            return False
        logger.info("Blocked %s for chat %s: %s", self.path, nav.chat_id, action.kind.value)
        if isinstance(event, CallbackQuery):
            await event.answer()
        await self._navigator.navigate(nav, self.path)
        return False


def IsAdmin() -> CanOpen:
    """Use on admin routers to restrict them to admins."""
    return CanOpen("/admin", redirect=False)
