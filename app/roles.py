from __future__ import annotations

from typing import Dict


ROLE_STAFF = "staff"
ROLE_MANAGER = "manager"

# Labels seen from the employee directory API and the Korean UI.
_ROLE_ALIASES: Dict[str, str] = {
    "staff": ROLE_STAFF,
    "employee": ROLE_STAFF,
    "직원": ROLE_STAFF,
    "manager": ROLE_MANAGER,
    "mgr": ROLE_MANAGER,
    "매니저": ROLE_MANAGER,
}

API_EMPLOYMENT_TYPES: Dict[str, str] = {
    ROLE_STAFF: "EMPLOYEE",
    ROLE_MANAGER: "MANAGER",
}


def normalize_role(role: str | None) -> str:
    """Return ``staff`` or ``manager``; unknown labels fall back to ``staff``."""
    label = (role or "").strip().lower()
    return _ROLE_ALIASES.get(label, ROLE_STAFF)



def employment_type(role: str | None) -> str:
    return API_EMPLOYMENT_TYPES[normalize_role(role)]
