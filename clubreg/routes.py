"""
Navigable paths of the bot and their access rules.

Order matters: the first matching pattern wins.
"""
from __future__ import annotations

from clubreg.models.models import Role
from clubreg.session.guard import IncompleteTarget, Route, RouteTable

ADMIN_ONLY = frozenset({Role.ADMIN})


def build_routes(incomplete_target: IncompleteTarget = IncompleteTarget.COMPLETE_PROFILE) -> RouteTable:
    """
    In the inline-completion variant the dashboard is where an incomplete
    profile is finished, so it must stay reachable without completion.
    """
    inline = incomplete_target is IncompleteTarget.DASHBOARD
    return RouteTable([
        # Public
        Route("home",     "/",         protected=False),
        Route("login",    "/login",    protected=False),
        Route("signup",   "/signup",   protected=False),
        Route("programs", "/programs", protected=False),

        # Profile completion (reachable while incomplete)
        Route("complete_profile", "/complete-profile", requires_profile_completion=False),
        Route("dashboard",        "/dashboard",        requires_profile_completion=not inline),

        # Members
        Route("profile",          "/profile"),
        Route("participants",     "/participants"),
        Route("participant_new",  "/participants/new"),
        Route("program_register", "/programs/{program_id}/register"),
        Route("registrations",    "/registrations"),

        # Admin back-office
        Route("admin",                 "/admin",                                   allowed_roles=ADMIN_ONLY),
        Route("admin_programs",        "/admin/programs",                          allowed_roles=ADMIN_ONLY),
        Route("admin_program_new",     "/admin/programs/new",                      allowed_roles=ADMIN_ONLY),
        Route("admin_registrations",   "/admin/registrations",                     allowed_roles=ADMIN_ONLY),
        Route("admin_program_edit",    "/admin/programs/{program_id}/edit",          allowed_roles=ADMIN_ONLY),
        Route("admin_program_qs",      "/admin/programs/{program_id}/questions",     allowed_roles=ADMIN_ONLY),
        Route("admin_program_regs",    "/admin/programs/{program_id}/registrations", allowed_roles=ADMIN_ONLY),
    ])
