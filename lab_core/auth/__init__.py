"""
Authentication module for the lab borrowing tracker.

⚠️ PROTOTYPE ONLY - shared fixed passwords, not per-user credentials.
For production deployment, use Supabase Auth with Row Level Security.
"""

from .policy import (
    PasswordPolicy,
    display_name_from_email,
    synthesize_student,
)
from .authentication import (
    AuthGate,
    Session,
)

__all__ = [
    "PasswordPolicy",
    "display_name_from_email",
    "synthesize_student",
    "AuthGate",
    "Session",
]
