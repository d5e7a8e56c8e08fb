"""
Role gate deciding whether a session may enter a role-specific area.

One policy for every area: wait while the session is loading, send anonymous
visitors to the login page (remembering where they were going), send visitors
with another role to the home of the role they do have, let the rest through.
Each area is a RoleGate built from data; there is no per-role branching code.
"""
from typing import Dict, Mapping, Optional

from pydantic import BaseModel

from models.auth import SessionContext, UserRole

LOGIN_PATH = "/login"
END_USER_HOME = "/app/experiences"


class GateOutcome:
    LOADING = "loading"
    ALLOW = "allow"
    REDIRECT = "redirect"


class GateDecision(BaseModel):
    outcome: str
    destination: Optional[str] = None
    from_location: Optional[str] = None
    replace: bool = True


class RoleGate:
    def __init__(
        self,
        required_role: Optional[str],
        fallbacks: Optional[Mapping[str, str]] = None,
        default_destination: str = END_USER_HOME,
        login_path: str = LOGIN_PATH,
    ):
        # required_role None: any authenticated visitor passes
        self.required_role = required_role
        self.fallbacks: Dict[str, str] = dict(fallbacks or {})
        self.default_destination = default_destination
        self.login_path = login_path

    def evaluate(self, session: SessionContext, location: str) -> GateDecision:
        if session.loading:
            return GateDecision(outcome=GateOutcome.LOADING)

        if not session.authenticated:
            return GateDecision(outcome=GateOutcome.REDIRECT, destination=self.login_path, from_location=location)

        role = session.profile.role if session.profile else None
        if self.required_role is not None and role != self.required_role:
            destination = self.fallbacks.get(role, self.default_destination)
            return GateDecision(outcome=GateOutcome.REDIRECT, destination=destination)

        return GateDecision(outcome=GateOutcome.ALLOW)


END_USER_GATE = RoleGate(None)

HR_GATE = RoleGate(UserRole.HR_ADMIN, {
    UserRole.SUPER_ADMIN: "/super-admin",
    UserRole.ASSOCIATION_ADMIN: "/association",
})

SUPER_ADMIN_GATE = RoleGate(UserRole.SUPER_ADMIN, {
    UserRole.HR_ADMIN: "/hr",
})

ASSOCIATION_GATE = RoleGate(UserRole.ASSOCIATION_ADMIN, {
    UserRole.SUPER_ADMIN: "/super-admin",
    UserRole.HR_ADMIN: "/hr",
})

AREA_GATES = [
    ("/super-admin", SUPER_ADMIN_GATE),
    ("/association", ASSOCIATION_GATE),
    ("/app", END_USER_GATE),
    ("/hr", HR_GATE),
]


def gate_for_path(path: str) -> Optional[RoleGate]:
    for prefix, gate in AREA_GATES:
        if path == prefix or path.startswith(prefix + "/"):
            return gate
    return None


def resolve(session: SessionContext, path: str) -> GateDecision:
    """Decision for navigating to `path`; paths outside every area are public."""
    gate = gate_for_path(path)
    if gate is None:
        return GateDecision(outcome=GateOutcome.ALLOW)
    return gate.evaluate(session, path)
