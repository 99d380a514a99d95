"""
Route guard — a pure decision over (snapshot, path).

`decide` never performs I/O and never reads anything but its arguments, so
the same inputs always give the same Action. Performing the redirect is the
navigator's job.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from clubreg.session.types import ReadinessSnapshot

LOGIN_PATH            = "/login"
COMPLETE_PROFILE_PATH = "/complete-profile"
DASHBOARD_PATH        = "/dashboard"

_PARAM_RE = re.compile(r"\{([a-z_][a-z0-9_]*)\}")


class ActionKind(str, enum.Enum):
    RENDER                    = "render"
    REDIRECT_LOGIN            = "redirect_login"
    REDIRECT_COMPLETE_PROFILE = "redirect_complete_profile"
    REDIRECT_DASHBOARD        = "redirect_dashboard"
    SHOW_LOADING              = "show_loading"
    NOT_FOUND                 = "not_found"


class IncompleteTarget(str, enum.Enum):
    """Where an incomplete profile is sent (product decision, see config)."""
    COMPLETE_PROFILE = "complete_profile"
    DASHBOARD        = "dashboard"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    target: Optional[str] = None        # where to go for redirects
    from_path: Optional[str] = None     # original path, replayed after sign-in
    params: Tuple[Tuple[str, str], ...] = ()

    @property
    def is_redirect(self) -> bool:
        return self.kind in (
            ActionKind.REDIRECT_LOGIN,
            ActionKind.REDIRECT_COMPLETE_PROFILE,
            ActionKind.REDIRECT_DASHBOARD,
        )

    def param_dict(self) -> Dict[str, str]:
        return dict(self.params)


@dataclass(frozen=True)
class Route:
    """
    A navigable path.

    pattern                    : "/programs/{program_id}/register"
    protected                  : needs a signed-in user
    requires_profile_completion: needs profile_completed=True
    allowed_roles              : empty = any role
    """

    name: str
    pattern: str
    protected: bool = True
    requires_profile_completion: bool = True
    allowed_roles: FrozenSet[str] = frozenset()
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        parts = []
        for segment in self.pattern.strip("/").split("/"):
            m = _PARAM_RE.fullmatch(segment)
            parts.append(f"(?P<{m.group(1)}>[^/]+)" if m else re.escape(segment))
        object.__setattr__(self, "regex", re.compile("^/" + "/".join(parts) + "$"))

    def match(self, path: str) -> Optional[Dict[str, str]]:
        m = self.regex.match(path)
        return m.groupdict() if m else None


class RouteTable:
    def __init__(self, routes: Iterable[Route]) -> None:
        self._routes: Tuple[Route, ...] = tuple(routes)

    def __iter__(self):
        return iter(self._routes)

    def get(self, name: str) -> Optional[Route]:
        for route in self._routes:
            if route.name == name:
                return route
        return None

    def resolve(self, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        """First route whose pattern matches `path` (query string ignored)."""
        clean = normalize_path(path)
        for route in self._routes:
            params = route.match(clean)
            if params is not None:
                return route, params
        return None


def normalize_path(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def decide(
    snapshot: ReadinessSnapshot,
    path: str,
    routes: RouteTable,
    incomplete_target: IncompleteTarget = IncompleteTarget.COMPLETE_PROFILE,
) -> Action:
    """First matching rule wins."""
    resolved = routes.resolve(path)
    if resolved is None:
        return Action(ActionKind.NOT_FOUND)
    route, params = resolved
    clean = normalize_path(path)
    render = Action(ActionKind.RENDER, target=clean, params=tuple(sorted(params.items())))

    if not route.protected:
        return render

    # 1. Nothing to decide on yet
    if not snapshot.ready:
        return Action(ActionKind.SHOW_LOADING, target=clean)
    if snapshot.identity is not None and snapshot.profile_completed is None:
        return Action(ActionKind.SHOW_LOADING, target=clean)

    # 2. Anonymous
    if snapshot.identity is None:
        return Action(ActionKind.REDIRECT_LOGIN, target=LOGIN_PATH, from_path=clean)

    # 3. Incomplete profile
    if route.requires_profile_completion and not snapshot.profile_completed:
        if incomplete_target is IncompleteTarget.DASHBOARD:
            return Action(ActionKind.REDIRECT_DASHBOARD, target=DASHBOARD_PATH)
        return Action(ActionKind.REDIRECT_COMPLETE_PROFILE, target=COMPLETE_PROFILE_PATH)

    # 4. Finished wizard cannot be re-entered
    if clean == COMPLETE_PROFILE_PATH and snapshot.profile_completed:
        return Action(ActionKind.REDIRECT_DASHBOARD, target=DASHBOARD_PATH)

    # 5. Role gate; an unresolved role is never a member
    if route.allowed_roles and snapshot.role not in route.allowed_roles:
        return Action(ActionKind.REDIRECT_DASHBOARD, target=DASHBOARD_PATH)

    # 6. Allowed
    return render
