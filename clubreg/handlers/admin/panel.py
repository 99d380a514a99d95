"""
Admin panel entry point and registration review.
"""
import logging

from aiogram import F, Router, html
from aiogram.types import CallbackQuery

from clubreg.keyboards import (
    RegFilterCb, RegistrationCb,
    admin_menu_kb, admin_registrations_kb, registration_admin_kb,
)
from clubreg.middlewares import IsAdmin
from clubreg.models.models import Registration, RegistrationStatus
from clubreg.navigation import NavContext, navigator
from clubreg.services import (
    count_participants, count_profiles, get_program, get_registration,
    list_program_questions, list_programs, list_registrations, registration_stats,
    update_registration_status,
)

logger = logging.getLogger(__name__)
router = Router(name="admin_panel")
router.callback_query.filter(IsAdmin())

# Longest list shown in one message
LIST_LIMIT = 40


# ── Admin home ────────────────────────────────────────────────────────────────

@navigator.screen("/admin")
async def screen_admin(ctx: NavContext) -> None:
    stats = await registration_stats(ctx.session)
    programs = await list_programs(ctx.session)
    active = sum(1 for p in programs if p.is_active)
    await ctx.show(
        "⚡ <b>Admin panel</b>\n\n"
        f"👤 Accounts: <b>{await count_profiles(ctx.session)}</b>\n"
        f"👨‍👩‍👧 Participants: <b>{await count_participants(ctx.session)}</b>\n"
        f"🏅 Programs: <b>{len(programs)}</b> ({active} open)\n\n"
        f"📋 Registrations\n"
        f"   {RegistrationStatus.EMOJI[RegistrationStatus.PENDING]} Pending: <b>{stats[RegistrationStatus.PENDING]}</b>\n"
        f"   {RegistrationStatus.EMOJI[RegistrationStatus.CONFIRMED]} Confirmed: <b>{stats[RegistrationStatus.CONFIRMED]}</b>\n"
        f"   {RegistrationStatus.EMOJI[RegistrationStatus.CANCELLED]} Cancelled: <b>{stats[RegistrationStatus.CANCELLED]}</b>",
        reply_markup=admin_menu_kb(),
    )


# ── Registration lists ────────────────────────────────────────────────────────

async def _show_registrations(ctx: NavContext, status: str = "") -> None:
    registrations = await list_registrations(ctx.session, status=status or None)
    title = f"📋 <b>Registrations</b> · {status.title() if status else 'All'}"
    if not registrations:
        text = f"{title}\n\n<i>Nothing here.</i>"
    else:
        text = f"{title}\n\n{len(registrations)} total. Tap one to review:"
    await ctx.show(text, reply_markup=admin_registrations_kb(registrations[:LIST_LIMIT]))


@navigator.screen("/admin/registrations")
async def screen_admin_registrations(ctx: NavContext) -> None:
    await _show_registrations(ctx, RegistrationStatus.PENDING)


@router.callback_query(RegFilterCb.filter())
async def cq_filter_registrations(callback: CallbackQuery, callback_data: RegFilterCb, nav: NavContext) -> None:
    await callback.answer()
    await _show_registrations(nav, callback_data.status)


@navigator.screen("/admin/programs/{program_id}/registrations")
async def screen_program_registrations(ctx: NavContext, program_id: str) -> None:
    program = await get_program(ctx.session, int(program_id)) if program_id.isdigit() else None
    if program is None:
        await navigator.not_found(ctx, f"/admin/programs/{program_id}/registrations")
        return

    registrations = await list_registrations(ctx.session, program_id=program.id)
    seats = f"{len([r for r in registrations if r.status != RegistrationStatus.CANCELLED])}"
    if program.capacity is not None:
        seats += f"/{program.capacity}"
    await ctx.show(
        f"🏅 <b>{html.quote(program.name)}</b> {program.status_emoji}\n"
        f"👥 Seats taken: {seats}\n\n"
        + ("Tap a registration to review:" if registrations else "<i>No registrations yet.</i>"),
        reply_markup=admin_registrations_kb(
            registrations[:LIST_LIMIT], back_path="/admin/programs", with_filter=False,
        ),
    )


# ── Review ────────────────────────────────────────────────────────────────────

async def _answers_block(ctx: NavContext, r: Registration) -> str:
    lines = []
    if r.answers:
        labels = {str(q.id): q.label for q in await list_program_questions(ctx.session, r.program_id)}
        for key, value in r.answers.items():
            label = labels.get(key, f"Question #{key}")
            lines.append(f"❓ {html.quote(label)}: <b>{html.quote(value)}</b>")
    if r.waiver_accepted_at is not None:
        lines.append(f"📜 Waiver accepted {r.waiver_accepted_at:%Y-%m-%d %H:%M}")
    return ("\n\n<b>Registration form</b>\n" + "\n".join(lines)) if lines else ""


async def _show_registration(ctx: NavContext, registration_id: int) -> bool:
    r = await get_registration(ctx.session, registration_id)
    if r is None:
        return False
    profile = r.participant.profile
    born = r.participant.date_of_birth.isoformat() if r.participant.date_of_birth else "—"
    answers = await _answers_block(ctx, r)
    await ctx.show(
        f"{r.status_emoji} <b>{html.quote(r.participant.full_name)}</b>\n"
        f"🎂 {born}\n"
        f"🏅 {html.quote(r.program.name)}\n"
        f"🗓 {r.registered_at:%Y-%m-%d %H:%M}\n\n"
        f"<b>Account holder</b>\n"
        f"👤 {html.quote(profile.display_name)}\n"
        f"📧 {html.quote(profile.email)}\n"
        f"📞 {html.quote(profile.phone or '—')}"
        f"{answers}",
        reply_markup=registration_admin_kb(r),
    )
    return True


@router.callback_query(RegistrationCb.filter(F.action == "view"))
async def cq_registration_view(callback: CallbackQuery, callback_data: RegistrationCb, nav: NavContext) -> None:
    if not await _show_registration(nav, callback_data.rid):
        await callback.answer("Registration not found.", show_alert=True)
        return
    await callback.answer()


@router.callback_query(RegistrationCb.filter(F.action.in_({"confirm", "cancel"})))
async def cq_registration_status(
    callback: CallbackQuery,
    callback_data: RegistrationCb,
    nav: NavContext,
) -> None:
    status = (
        RegistrationStatus.CONFIRMED if callback_data.action == "confirm"
        else RegistrationStatus.CANCELLED
    )
    await update_registration_status(nav.session, callback_data.rid, status)
    logger.info("Registration %s set to %s by chat %s", callback_data.rid, status, nav.chat_id)

    if not await _show_registration(nav, callback_data.rid):
        await callback.answer("Registration not found.", show_alert=True)
        return
    await callback.answer(f"{RegistrationStatus.EMOJI[status]} {status.title()}")
