# =============================================================================
# lab_core/auth/policy.py
# Shared-password login policy and student provisioning
# =============================================================================
"""
PROTOTYPE ONLY - NOT A CREDENTIAL SYSTEM.

Two fixed secrets gate access: one for the reserved admin address and one
shared by every organizational address. Real deployments need per-user
credentials with hashed secrets (e.g. Supabase Auth).
"""

from __future__ import annotations
import re
from dataclasses import dataclass

from lab_core.errors import AuthenticationRejected
from lab_core.logging import get_logger
from lab_core.models import Role, User, new_id, utc_now_iso

logger = get_logger(__name__)

_WORD_START = re.compile(r"\b\w")


@dataclass(frozen=True)
class PasswordPolicy:
    """Fixed-password gate shared by both storage modes."""
    admin_email: str = "admin@issacasimov.in"
    admin_password: str = "ralab"
    student_password: str = "issacasimov"
    org_domain: str = "issacasimov.in"

    @classmethod
    def from_config(cls, config) -> PasswordPolicy:
        return cls(
            admin_email=config.admin_email,
            admin_password=config.admin_password,
            student_password=config.student_password,
            org_domain=config.org_domain,
        )

    def is_admin(self, email: str) -> bool:
        return email == self.admin_email

    def in_organization(self, email: str) -> bool:
        return email.endswith(f"@{self.org_domain}")

    def check(self, email: str, password: str) -> bool:
        """
        Validate a credential pair.

        The admin address accepts only the admin password; any other address
        must carry the organizational domain and the shared student password.
        """
        if self.is_admin(email):
            ok = password == self.admin_password
        else:
            ok = self.in_organization(email) and password == self.student_password

        if not ok:
            known = self.is_admin(email) or self.in_organization(email)
            rejected = AuthenticationRejected(
                "Authentication rejected",
                email=email,
                reason="wrong password" if known else "outside organization",
            )
            logger.info(str(rejected))
        return ok

    def may_provision(self, email: str) -> bool:
        """Whether an unknown address may get a fresh student record."""
        return self.in_organization(email) and not self.is_admin(email)


def display_name_from_email(email: str) -> str:
    """
    Derive a display name from the address' local part.

    >>> display_name_from_email("jane.doe@issacasimov.in")
    'Jane Doe'
    """
    local = email.split("@")[0].replace(".", " ")
    return _WORD_START.sub(lambda m: m.group().upper(), local)


def synthesize_student(email: str) -> User:
    """New student record for a first-time organizational login."""
    return User(
        id=new_id("user"),
        name=display_name_from_email(email),
        email=email,
        role=Role.STUDENT,
        registered_at=utc_now_iso(),
    )
