"""
Explicit request context.

Organization scope, acting user and the permission predicate are passed
into every registry/service call instead of being read from ambient
session state. This keeps the engine testable in isolation.
"""

from __future__ import annotations

from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestContext(BaseModel):
    """
    Caller identity and capabilities for a single invocation.
    """

    organization_id: Optional[str] = Field(
        None,
        description="Current organization; scopes visible templates/layouts",
    )

    user_id: Optional[str] = Field(
        None,
        description="Acting user; recorded as creator/owner",
    )

    permissions: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Granted permission keys. '*' grants everything.",
    )

    model_config = ConfigDict(frozen=True)

    def can(self, key: str) -> bool:
        return "*" in self.permissions or key in self.permissions

    def sees(self, *, is_public: bool, organization_id: Optional[str]) -> bool:
        """Visibility rule shared by templates and layouts."""
        if is_public or organization_id is None:
            return True
        return organization_id == self.organization_id


# Permission key checked before reviewing a submitted work entry.
PERM_ENTRIES_APPROVE = "work_entries.approve"
