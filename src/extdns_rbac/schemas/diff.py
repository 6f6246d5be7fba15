"""Plan models for a read-only reconciliation pass.

A plan reports, for each of the managed RBAC objects, whether a reconcile pass
would create it, update it (and why), or leave it untouched.

Example:
    >>> from extdns_rbac.schemas.diff import ChangeType, ObjectDiff, PlanResult
    >>> plan = PlanResult(
    ...     diffs=[
    ...         ObjectDiff(
    ...             change_type=ChangeType.CREATE,
    ...             kind="ClusterRole",
    ...             name="external-dns",
    ...         )
    ...     ]
    ... )
    >>> plan.has_changes()
    True
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    """What a reconcile pass would do with an object."""

    CREATE = "create"
    """Object is absent and would be created."""

    UPDATE = "update"
    """Object exists but differs from the desired state."""

    UNCHANGED = "unchanged"
    """Object matches the desired state."""


class ObjectDiff(BaseModel):
    """Planned change for a single RBAC object.

    Attributes:
        change_type: Planned action.
        kind: Object kind.
        name: Object name.
        namespace: Object namespace (None for cluster-scoped kinds).
        reason: Comparator reason for an update, empty otherwise.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    change_type: ChangeType = Field(..., description="Planned action")
    kind: str = Field(..., description="Object kind")
    name: str = Field(..., description="Object name")
    namespace: str | None = Field(default=None, description="Object namespace")
    reason: str = Field(default="", description="Why the object would change")


class PlanResult(BaseModel):
    """Result of planning a reconcile pass.

    Attributes:
        generated_at: Timestamp when the plan was computed.
        diffs: One entry per managed object, in reconcile order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc),
        description="Plan computation timestamp",
    )
    diffs: list[ObjectDiff] = Field(default_factory=list, description="Planned changes")

    def has_changes(self) -> bool:
        """Check if any object would be written.

        Returns:
            True if any diff is not UNCHANGED.
        """
        return any(d.change_type != ChangeType.UNCHANGED for d in self.diffs)

    def diffs_by_change_type(self) -> dict[ChangeType, list[ObjectDiff]]:
        """Group diffs by change type.

        Returns:
            Dictionary mapping every change type to its diffs.
        """
        result: dict[ChangeType, list[ObjectDiff]] = {
            change_type: [] for change_type in ChangeType
        }
        for diff in self.diffs:
            result[diff.change_type].append(diff)
        return result


__all__ = ["ChangeType", "ObjectDiff", "PlanResult"]
