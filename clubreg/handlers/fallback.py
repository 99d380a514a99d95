"""
Global fallback handler — included LAST in the dispatcher.

Catches any callback query that no other router handled.
Prevents infinite Telegram spinners from:
  - Stale keyboards after bot restart (MemoryStorage is wiped on redeploy)
  - Buttons of a screen the user may no longer open (e.g. after sign-out)
"""
import logging

from aiogram import Router
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from clubreg.navigation import NavContext, navigator

logger = logging.getLogger(__name__)
router = Router(name="fallback")


@router.callback_query()
async def cq_fallback(callback: CallbackQuery, state: FSMContext, nav: NavContext) -> None:
    logger.debug("Unhandled callback in chat %s: %s", nav.chat_id, callback.data)
    await callback.answer("⚠️ This button has expired. Starting over.", show_alert=True)
    await state.set_state(None)
    await navigator.navigate(nav, "/")


@router.message()
async def msg_fallback(message: Message) -> None:
    await message.answer("🤔 I did not understand that. Send /start to open the menu.")
