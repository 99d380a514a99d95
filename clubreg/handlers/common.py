"""
Common handlers: /start, slash-command shortcuts, menu navigation, sign-out.
"""
import logging

from aiogram import F, Router, html
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from clubreg.keyboards import FormCb, NavCb, guest_menu, incomplete_profile_menu, member_menu
from clubreg.navigation import NavContext, navigator
from clubreg.session.guard import DASHBOARD_PATH
from clubreg.session.machine import SessionStateMachine

logger = logging.getLogger(__name__)
router = Router(name="common")

# /command → path
COMMAND_PATHS = {
    "login":         "/login",
    "signup":        "/signup",
    "dashboard":     DASHBOARD_PATH,
    "programs":      "/programs",
    "profile":       "/profile",
    "participants":  "/participants",
    "registrations": "/registrations",
    "admin":         "/admin",
}


# ── Home ──────────────────────────────────────────────────────────────────────

@navigator.screen("/")
async def screen_home(ctx: NavContext) -> None:
    snapshot = ctx.machine.snapshot
    if not snapshot.is_authenticated:
        await ctx.show(
            "🏅 <b>Welcome to the club registration desk!</b>\n\n"
            "Here you can:\n"
            "• 📋 Browse this season's programs\n"
            "• 👨‍👩‍👧 Register yourself or your children\n"
            "• 🔔 Track the status of your registrations\n\n"
            "Sign in or create an account to get started:",
            reply_markup=guest_menu(),
        )
        return

    name = snapshot.profile.display_name if snapshot.profile else snapshot.identity.email
    if not snapshot.profile_completed:
        await ctx.show(
            f"👋 Hi, {html.quote(name)}!\n\n"
            "Your profile is missing contact details. "
            "Please complete it before registering for programs.",
            reply_markup=incomplete_profile_menu(),
        )
        return
    await ctx.show(
        f"👋 Welcome back, <b>{html.quote(name)}</b>!\n\nChoose an action:",
        reply_markup=member_menu(is_admin=snapshot.is_admin),
    )


@router.message(CommandStart())
async def cmd_start(message: Message, nav: NavContext, state: FSMContext) -> None:
    await state.set_state(None)
    await navigator.navigate(nav, "/")


@router.message(Command(*COMMAND_PATHS))
async def cmd_shortcut(
    message: Message,
    command: CommandObject,
    nav: NavContext,
    state: FSMContext,
) -> None:
    await state.set_state(None)
    await navigator.navigate(nav, COMMAND_PATHS[command.command])


@router.message(Command("open"))
async def cmd_open(message: Message, command: CommandObject, nav: NavContext, state: FSMContext) -> None:
    """/open <path> — jump to any screen, e.g. /open /programs/3/register"""
    if not command.args:
        await message.answer("Usage: <code>/open /path</code>")
        return
    await state.set_state(None)
    await navigator.navigate(nav, command.args.strip())


# ── Menu navigation ───────────────────────────────────────────────────────────

@router.callback_query(NavCb.filter())
async def cq_navigate(
    callback: CallbackQuery,
    callback_data: NavCb,
    nav: NavContext,
    state: FSMContext,
) -> None:
    # Leaving a screen abandons any form in progress
    await state.set_state(None)
    await callback.answer()
    await navigator.navigate(nav, callback_data.path)


@router.callback_query(FormCb.filter(F.action == "cancel"))
async def cq_cancel_form(callback: CallbackQuery, nav: NavContext, state: FSMContext) -> None:
    await state.set_state(None)
    await callback.answer("Cancelled")
    await navigator.navigate(nav, "/")


@router.callback_query(F.data == "noop")
async def cq_noop(callback: CallbackQuery) -> None:
    await callback.answer()


# ── Sign-out ──────────────────────────────────────────────────────────────────

async def _sign_out(nav: NavContext, machine: SessionStateMachine, state: FSMContext) -> None:
    await state.clear()
    path = await machine.sign_out()
    logger.info("Chat %s signed out", nav.chat_id)
    await navigator.navigate(nav, path)


@router.message(Command("logout"))
async def cmd_logout(
    message: Message,
    nav: NavContext,
    machine: SessionStateMachine,
    state: FSMContext,
) -> None:
    await _sign_out(nav, machine, state)


@router.callback_query(F.data == "logout")
async def cq_logout(
    callback: CallbackQuery,
    nav: NavContext,
    machine: SessionStateMachine,
    state: FSMContext,
) -> None:
    await callback.answer("Signed out")
    await _sign_out(nav, machine, state)
