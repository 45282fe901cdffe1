from dataclasses import dataclass

from .enums import Role, MembershipTier


@dataclass(frozen=True)
class IdentityContext:
    """Who is calling. Resolved at the HTTP boundary and passed into every service call."""
    user_id: str
    role: Role
    membership_tier: MembershipTier = MembershipTier.FREE
