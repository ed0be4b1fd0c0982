"""
Role Visibility Module

This module decides which users' entries a caller may see in a report.

Features:
- Self-only scope for users
- Team scope for managers
- Org-wide scope for admins
- Explicit user[] override for admin drill-through

Data Model:
- UserScope: None for unrestricted, otherwise a frozen set of user IDs

Security:
- Role taken from the authenticated identity only
- user[] ignored for non-admins

Author: Hourglass Development Team
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional
import logging

from hourglass.shared.models import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserScope:
    """
    Set of visible user IDs.

    Attributes:
        user_ids (Optional[FrozenSet[str]]): Visible users, None for everyone
    """
    user_ids: Optional[FrozenSet[str]] = None

    @property
    def unrestricted(self) -> bool:
        return self.user_ids is None

    def allows(self, user_id: Optional[str]) -> bool:
        if self.user_ids is None:
            return True
        return user_id in self.user_ids

    def to_query(self, field: str = "user_id") -> dict:
        """Mongo predicate for timesheet documents."""
        if self.user_ids is None:
            return {}
        return {field: {"$in": sorted(self.user_ids)}}


async def resolve_user_scope(
    user_id: str,
    role: Role,
    explicit_user_ids: Iterable[str],
    fetch_team_member_ids: Callable[[str], Awaitable[Iterable[str]]]
) -> UserScope:
    """
    Build the visibility scope for a caller.

    Args:
        user_id: Caller ID
        role: Caller role
        explicit_user_ids: user[] values from the query string
        fetch_team_member_ids: Loads member IDs of active teams a manager runs

    Returns:
        UserScope: Visible users

    Notes:
        - user: self only
        - manager: team members plus self
        - admin: everyone, or exactly user[] when supplied
    """
    role = Role(role)

    if role is Role.USER:
        return UserScope(frozenset([user_id]))

    if role is Role.MANAGER:
        member_ids = set(await fetch_team_member_ids(user_id))
        member_ids.add(user_id)
        logger.info(f"Manager {user_id} scoped to {len(member_ids)} users")
        return UserScope(frozenset(member_ids))

    explicit = [uid for uid in explicit_user_ids if uid]
    if explicit:
        return UserScope(frozenset(explicit))
    return UserScope()
