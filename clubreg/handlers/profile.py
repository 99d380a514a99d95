"""
Dashboard, profile view and the profile completion wizard.

Flow:
  /complete-profile → full name → phone → street (optional) → city
                    → province → postal code → confirm → saved ✅ → /dashboard
The same wizard edits a completed profile from the profile screen.
"""
import logging

from aiogram import F, Router, html
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardButton, Message
from aiogram.utils.keyboard import InlineKeyboardBuilder
from pydantic import ValidationError

from clubreg.config import settings
from clubreg.keyboards import (
    FormCb, cancel_kb, confirm_kb, incomplete_profile_menu, member_menu, nav_button, skip_kb,
)
from clubreg.middlewares import CanOpen
from clubreg.models.models import RegistrationStatus, Role
from clubreg.navigation import NavContext, navigator
from clubreg.services import (
    ProfileStoreError, count_participants_for, ensure_account_holder, list_registrations_for_profile,
)
from clubreg.session.completion import missing_profile_fields
from clubreg.session.guard import DASHBOARD_PATH
from clubreg.session.machine import SessionStateMachine
from clubreg.session.registry import Client
from clubreg.session.types import ProfileRecord
from clubreg.states import CompleteProfileStates
from clubreg.validators import (
    ProfileCompletionData,
    clean_city, clean_name, clean_phone, clean_postal_code, clean_province, clean_street,
    first_error,
)

logger = logging.getLogger(__name__)
router = Router(name="profile")

FIELD_LABELS = {
    "first_name": "first name",
    "last_name":  "last name",
    "phone":      "phone number",
}


# ── Dashboard ─────────────────────────────────────────────────────────────────

@navigator.screen("/dashboard")
async def screen_dashboard(ctx: NavContext) -> None:
    snapshot = ctx.machine.snapshot
    profile = snapshot.profile

    if not snapshot.profile_completed:
        # Inline-completion variant: the dashboard itself asks for the details
        missing = missing_profile_fields(profile) if profile else list(FIELD_LABELS)
        await ctx.show(
            "🧾 <b>Almost there!</b>\n\n"
            "Before you can register for programs we need your "
            + ", ".join(FIELD_LABELS.get(f, f) for f in missing)
            + ".",
            reply_markup=incomplete_profile_menu(),
        )
        return

    registrations = await list_registrations_for_profile(ctx.session, profile.id)
    active = [r for r in registrations if r.status != RegistrationStatus.CANCELLED]
    participants = await count_participants_for(ctx.session, profile.id)
    await ctx.show(
        f"🏠 <b>{html.quote(profile.display_name)}</b>\n"
        f"🎭 {Role.LABELS.get(profile.role, profile.role)}\n\n"
        f"👨‍👩‍👧 Participants: <b>{participants}</b>\n"
        f"📋 Active registrations: <b>{len(active)}</b>\n\n"
        "Choose an action:",
        reply_markup=member_menu(is_admin=snapshot.is_admin),
    )


# ── Profile view ──────────────────────────────────────────────────────────────

def _profile_text(profile: ProfileRecord) -> str:
    def v(value):
        return html.quote(value) if value else "—"

    return (
        f"👤 <b>{html.quote(profile.display_name)}</b>\n\n"
        f"📧 {html.quote(profile.email)}\n"
        f"🎭 {Role.LABELS.get(profile.role, profile.role)}\n"
        f"📞 {v(profile.phone)}\n"
        f"🏠 {v(profile.street_address)}\n"
        f"🏙 {v(profile.city)}, {v(profile.province)} {v(profile.postal_code)}\n"
        f"🌎 {v(profile.country)}"
    )


@navigator.screen("/profile")
async def screen_profile(ctx: NavContext) -> None:
    profile = ctx.machine.snapshot.profile
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="✏️ Edit details", callback_data="profile_edit"))
    builder.row(nav_button("🔙 Back", DASHBOARD_PATH))
    await ctx.show(_profile_text(profile), reply_markup=builder.as_markup())


# ── Wizard entry ──────────────────────────────────────────────────────────────

async def _start_wizard(ctx: NavContext, title: str) -> None:
    await ctx.state.set_state(CompleteProfileStates.enter_full_name)
    await ctx.state.update_data(profile_form={})
    await ctx.show(
        f"{title}\n\nEnter your <b>full name</b> (e.g. <i>Jordan Smith</i>):",
        reply_markup=cancel_kb(),
    )


@navigator.screen("/complete-profile")
async def screen_complete_profile(ctx: NavContext) -> None:
    await _start_wizard(ctx, "🧾 <b>Complete your profile</b>")


@router.callback_query(F.data == "profile_edit", CanOpen("/profile"))
async def cq_profile_edit(callback: CallbackQuery, nav: NavContext) -> None:
    await callback.answer()
    await _start_wizard(nav, "✏️ <b>Edit your profile</b>")


async def _remember(state: FSMContext, **values) -> dict:
    data = await state.get_data()
    form = dict(data.get("profile_form") or {})
    form.update(values)
    await state.update_data(profile_form=form)
    return form


# ── Steps ─────────────────────────────────────────────────────────────────────

@router.message(CompleteProfileStates.enter_full_name)
async def msg_full_name(message: Message, state: FSMContext) -> None:
    try:
        full_name = clean_name(message.text or "", "Full name")
        if len(full_name.split()) < 2:
            raise ValueError("Enter both first and last name")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await _remember(state, full_name=full_name)
    await state.set_state(CompleteProfileStates.enter_phone)
    await message.answer("📞 Enter your <b>phone number</b>:", reply_markup=cancel_kb())


@router.message(CompleteProfileStates.enter_phone)
async def msg_phone(message: Message, state: FSMContext) -> None:
    try:
        phone = clean_phone(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await _remember(state, phone=phone)
    await state.set_state(CompleteProfileStates.enter_street)
    await message.answer("🏠 Enter your <b>street address</b> or skip:", reply_markup=skip_kb())


@router.message(CompleteProfileStates.enter_street)
async def msg_street(message: Message, state: FSMContext) -> None:
    try:
        street = clean_street(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=skip_kb())
        return

    await _remember(state, street_address=street)
    await state.set_state(CompleteProfileStates.enter_city)
    await message.answer("🏙 Enter your <b>city</b>:", reply_markup=cancel_kb())


@router.callback_query(FormCb.filter(F.action == "skip"), CompleteProfileStates.enter_street)
async def cq_skip_street(callback: CallbackQuery, state: FSMContext) -> None:
    await _remember(state, street_address=None)
    await state.set_state(CompleteProfileStates.enter_city)
    await callback.message.edit_text("🏙 Enter your <b>city</b>:", reply_markup=cancel_kb())
    await callback.answer()


@router.message(CompleteProfileStates.enter_city)
async def msg_city(message: Message, state: FSMContext) -> None:
    try:
        city = clean_city(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await _remember(state, city=city)
    await state.set_state(CompleteProfileStates.enter_province)
    await message.answer("🗺 Enter your <b>province</b> (two letters, e.g. ON):", reply_markup=cancel_kb())


@router.message(CompleteProfileStates.enter_province)
async def msg_province(message: Message, state: FSMContext) -> None:
    try:
        province = clean_province(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await _remember(state, province=province)
    await state.set_state(CompleteProfileStates.enter_postal_code)
    await message.answer("📮 Enter your <b>postal code</b>:", reply_markup=cancel_kb())


@router.message(CompleteProfileStates.enter_postal_code)
async def msg_postal_code(message: Message, state: FSMContext) -> None:
    try:
        postal_code = clean_postal_code(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    form = await _remember(state, postal_code=postal_code)
    await state.set_state(CompleteProfileStates.confirm)
    street = form.get("street_address") or "—"
    await message.answer(
        "📝 <b>Check your details:</b>\n\n"
        f"👤 {html.quote(form['full_name'])}\n"
        f"📞 {html.quote(form['phone'])}\n"
        f"🏠 {html.quote(street)}\n"
        f"🏙 {html.quote(form['city'])}, {form['province']} {form['postal_code']}",
        reply_markup=confirm_kb(),
    )


@router.callback_query(FormCb.filter(F.action == "edit"), CompleteProfileStates.confirm)
async def cq_edit_profile_form(callback: CallbackQuery, nav: NavContext) -> None:
    await callback.answer()
    await _start_wizard(nav, "✏️ <b>Let's start over</b>")


# ── Save ──────────────────────────────────────────────────────────────────────

@router.callback_query(FormCb.filter(F.action == "confirm"), CompleteProfileStates.confirm)
async def cq_save_profile(
    callback: CallbackQuery,
    state: FSMContext,
    client: Client,
    machine: SessionStateMachine,
    nav: NavContext,
) -> None:
    identity = machine.snapshot.identity
    if identity is None:
        await state.set_state(None)
        await callback.answer()
        await navigator.navigate(nav, "/login")
        return

    data = await state.get_data()
    try:
        form = ProfileCompletionData(**(data.get("profile_form") or {}))
    except ValidationError as exc:
        await callback.answer(first_error(exc), show_alert=True)
        await _start_wizard(nav, "✏️ <b>Let's start over</b>")
        return

    patch = form.as_patch()
    try:
        record = await client.profiles.update(identity.id, patch)
        if record is None:
            # The profile was never created (e.g. the first resolution failed)
            base = ProfileRecord.from_identity(
                identity, settings.DEFAULT_ROLE, tuple(settings.admin_emails_list)
            )
            record = await client.profiles.insert(base.with_patch(patch))
    except ProfileStoreError:
        logger.exception("Profile save failed for %s", identity.id)
        await callback.answer("⚠️ Could not save your profile. Please try again.", show_alert=True)
        return

    if record.role == Role.PARTICIPANT:
        await ensure_account_holder(nav.session, record.id, form.first_name, form.last_name)

    await state.update_data(profile_form=None)
    await state.set_state(None)
    completed = await machine.refresh()
    await callback.answer("✅ Profile saved!")
    logger.info("Profile %s saved (complete=%s)", identity.id, completed)

    if completed:
        await navigator.navigate(nav, DASHBOARD_PATH)
    else:
        missing = missing_profile_fields(machine.snapshot.profile) if machine.snapshot.profile else []
        await nav.show(
            "⚠️ Your profile is still missing: " + ", ".join(FIELD_LABELS.get(f, f) for f in missing),
            reply_markup=incomplete_profile_menu(),
        )
