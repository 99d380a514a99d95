"""
Sign-up and sign-in FSM handlers.

Flow:
  /signup → choose role → first name → last name → e-mail
          → password → repeat password → account created, signed in
  /login  → e-mail → password → signed in → back to the page that asked for it
"""
import logging

from aiogram import Router, html
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from pydantic import ValidationError

from clubreg.config import settings
from clubreg.keyboards import RoleCb, cancel_kb, member_menu, role_kb
from clubreg.models.models import Role
from clubreg.navigation import NavContext, navigator
from clubreg.services.auth_backend import AuthBackendError
from clubreg.session.guard import DASHBOARD_PATH
from clubreg.session.machine import SessionStateMachine
from clubreg.session.registry import Client
from clubreg.session.types import AuthSession, IdentityMetadata
from clubreg.states import LoginStates, SignUpStates
from clubreg.validators import SignUpData, clean_email, clean_name, clean_password, first_error

logger = logging.getLogger(__name__)
router = Router(name="auth")

UNAVAILABLE = "⚠️ The account service is unavailable right now. Please try again in a minute."


async def _already_signed_in(ctx: NavContext) -> bool:
    snapshot = ctx.machine.snapshot
    if not snapshot.is_authenticated:
        return False
    await ctx.show(
        f"✅ You are signed in as <b>{html.quote(snapshot.identity.email)}</b>.",
        reply_markup=member_menu(is_admin=snapshot.is_admin),
    )
    return True


async def _drop_secret(message: Message) -> None:
    """Passwords should not stay in the chat history."""
    try:
        await message.delete()
    except TelegramBadRequest:
        logger.debug("Could not delete password message in chat %s", message.chat.id)


async def _enter(nav: NavContext, machine: SessionStateMachine, session: AuthSession) -> None:
    """Wait for the machine to pick up the new session, then continue."""
    await machine.wait_ready(identity_id=session.identity.id)
    await nav.state.set_state(None)
    await navigator.resume(nav, DASHBOARD_PATH)


# ── Sign in ───────────────────────────────────────────────────────────────────

@navigator.screen("/login")
async def screen_login(ctx: NavContext) -> None:
    if await _already_signed_in(ctx):
        return
    await ctx.state.set_state(LoginStates.enter_email)
    await ctx.show(
        "🔑 <b>Sign in</b>\n\nEnter your <b>e-mail</b>:",
        reply_markup=cancel_kb(),
    )


@router.message(LoginStates.enter_email)
async def msg_login_email(message: Message, state: FSMContext) -> None:
    try:
        email = clean_email(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(email=email)
    await state.set_state(LoginStates.enter_password)
    await message.answer("🔒 Enter your <b>password</b>:", reply_markup=cancel_kb())


@router.message(LoginStates.enter_password)
async def msg_login_password(
    message: Message,
    state: FSMContext,
    client: Client,
    machine: SessionStateMachine,
    nav: NavContext,
) -> None:
    password = message.text or ""
    await _drop_secret(message)
    data = await state.get_data()

    try:
        session, error = await client.auth.sign_in(data["email"], password)
    except AuthBackendError:
        logger.exception("Sign-in failed for chat %s", nav.chat_id)
        await message.answer(UNAVAILABLE, reply_markup=cancel_kb())
        return

    if error:
        await state.set_state(LoginStates.enter_email)
        await message.answer(f"⚠️ {error}\n\nEnter your <b>e-mail</b> again:", reply_markup=cancel_kb())
        return

    logger.info("Chat %s signed in as %s", nav.chat_id, session.identity.id)
    await _enter(nav, machine, session)


# ── Sign up ───────────────────────────────────────────────────────────────────

@navigator.screen("/signup")
async def screen_signup(ctx: NavContext) -> None:
    if await _already_signed_in(ctx):
        return
    await ctx.state.set_state(SignUpStates.choose_role)
    await ctx.show(
        "📝 <b>Create an account</b>\n\nWho are you registering as?",
        reply_markup=role_kb(),
    )


@router.callback_query(RoleCb.filter(), SignUpStates.choose_role)
async def cq_signup_role(callback: CallbackQuery, callback_data: RoleCb, state: FSMContext) -> None:
    if callback_data.role not in Role.SELF_SERVICE:
        await callback.answer("Unknown role.", show_alert=True)
        return

    await state.update_data(role=callback_data.role)
    await state.set_state(SignUpStates.enter_first_name)
    await callback.message.edit_text(
        f"👤 {Role.LABELS[callback_data.role]}\n\nEnter your <b>first name</b>:",
        reply_markup=cancel_kb(),
    )
    await callback.answer()


@router.message(SignUpStates.choose_role)
async def msg_signup_role_hint(message: Message) -> None:
    """Catch accidental text input during the role selection step."""
    await message.answer("👆 Please pick a role using the buttons:", reply_markup=role_kb())


@router.message(SignUpStates.enter_first_name)
async def msg_signup_first_name(message: Message, state: FSMContext) -> None:
    try:
        first_name = clean_name(message.text or "", "First name")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(first_name=first_name)
    await state.set_state(SignUpStates.enter_last_name)
    await message.answer("Enter your <b>last name</b>:", reply_markup=cancel_kb())


@router.message(SignUpStates.enter_last_name)
async def msg_signup_last_name(message: Message, state: FSMContext) -> None:
    try:
        last_name = clean_name(message.text or "", "Last name")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(last_name=last_name)
    await state.set_state(SignUpStates.enter_email)
    await message.answer("📧 Enter your <b>e-mail</b>:", reply_markup=cancel_kb())


@router.message(SignUpStates.enter_email)
async def msg_signup_email(message: Message, state: FSMContext) -> None:
    try:
        email = clean_email(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(email=email)
    await state.set_state(SignUpStates.enter_password)
    await message.answer(
        f"🔒 Choose a <b>password</b> (at least {settings.PASSWORD_MIN_LENGTH} characters):",
        reply_markup=cancel_kb(),
    )


@router.message(SignUpStates.enter_password)
async def msg_signup_password(message: Message, state: FSMContext) -> None:
    password = message.text or ""
    await _drop_secret(message)
    try:
        clean_password(password, settings.PASSWORD_MIN_LENGTH)
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(password=password)
    await state.set_state(SignUpStates.confirm_password)
    await message.answer("🔒 Repeat the password:", reply_markup=cancel_kb())


@router.message(SignUpStates.confirm_password)
async def msg_signup_confirm_password(
    message: Message,
    state: FSMContext,
    client: Client,
    machine: SessionStateMachine,
    nav: NavContext,
) -> None:
    confirm = message.text or ""
    await _drop_secret(message)
    data = await state.get_data()

    try:
        form = SignUpData(
            email=data["email"],
            password=data["password"],
            confirm_password=confirm,
            first_name=data["first_name"],
            last_name=data["last_name"],
            role=data["role"],
            min_length=settings.PASSWORD_MIN_LENGTH,
        )
    except ValidationError as exc:
        await state.set_state(SignUpStates.enter_password)
        await message.answer(
            f"⚠️ {first_error(exc)}.\n\nChoose a <b>password</b> again:",
            reply_markup=cancel_kb(),
        )
        return
    finally:
        await state.update_data(password=None)

    metadata = IdentityMetadata(role=form.role, first_name=form.first_name, last_name=form.last_name)
    try:
        session, error = await client.auth.sign_up(form.email, form.password, metadata)
    except AuthBackendError:
        logger.exception("Sign-up failed for chat %s", nav.chat_id)
        await message.answer(UNAVAILABLE, reply_markup=cancel_kb())
        return

    if error:
        await state.set_state(SignUpStates.enter_email)
        await message.answer(f"⚠️ {error}\n\nEnter another <b>e-mail</b>:", reply_markup=cancel_kb())
        return

    logger.info("Chat %s created account %s", nav.chat_id, session.identity.id)
    await message.answer("🎉 Your account is ready!")
    await _enter(nav, machine, session)
