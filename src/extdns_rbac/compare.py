"""Order-insensitive comparison of RBAC rule sets and binding subjects.

Rule sets are compared by the permissions they induce rather than by their
literal layout: each rule is expanded into one ``"<api-group>/<resource>"``
entry per group and resource, mapped to its sorted verb set. Two rule sets are
equal when those maps are equal, so reordering groups, resources, verbs or
whole rules never counts as a change.

Bindings are compared with one of two subject policies:

- ``role_binding_changed``: the binding holds a single authoritative subject
  whose name and namespace are repaired in place.
- ``cluster_role_binding_changed``: the binding holds a set of subjects; any
  difference in the set replaces the whole subject list with the desired one.

Example:
    >>> from extdns_rbac.compare import rules_changed
    >>> from extdns_rbac.schemas.rbac import PolicyRule
    >>> current = [PolicyRule(api_groups=[""], resources=["secrets"], verbs=["list", "get"])]
    >>> desired = [PolicyRule(api_groups=[""], resources=["secrets"], verbs=["get", "list"])]
    >>> rules_changed(current, desired)
    (False, '')
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from extdns_rbac.errors import OverlappingRulesError
from extdns_rbac.schemas.rbac import ClusterRoleBinding, PolicyRule, RoleBinding, Subject

B = TypeVar("B", RoleBinding, ClusterRoleBinding)


@dataclass(frozen=True)
class BindingChange(Generic[B]):
    """Outcome of comparing a current binding with its desired state.

    Attributes:
        changed: Whether the binding must be updated.
        updated: Copy of the current binding with the differing fields
            overwritten. Equal to ``current`` when nothing changed.
        reason: Human-readable list of the changed fields.
    """

    changed: bool
    updated: B
    reason: str


# =============================================================================
# Rule Sets
# =============================================================================


def _rule_keys(rule: PolicyRule) -> list[str]:
    return [f"{group}/{resource}" for group in rule.api_groups for resource in rule.resources]


def build_sorted_policy_rule_map(rules: Sequence[PolicyRule]) -> dict[str, list[str]]:
    """Expand a rule set into a ``"<api-group>/<resource>"`` -> verbs map.

    Verbs are deduplicated and sorted. When two rules cover the same key their
    verbs are merged, mirroring how the API server grants the union of all
    matching rules.

    Args:
        rules: Rule set to expand.

    Returns:
        Mapping from group/resource key to its sorted verb list.

    Example:
        >>> build_sorted_policy_rule_map(
        ...     [PolicyRule(api_groups=["", "apps"], resources=["pods"], verbs=["list", "get"])]
        ... )
        {'/pods': ['get', 'list'], 'apps/pods': ['get', 'list']}
    """
    verbs_by_key: dict[str, set[str]] = {}
    for rule in rules:
        for key in _rule_keys(rule):
            verbs_by_key.setdefault(key, set()).update(rule.verbs)
    return {key: sorted(verbs) for key, verbs in verbs_by_key.items()}


def _diff_rule_maps(
    expected: dict[str, list[str]],
    actual: dict[str, list[str]],
) -> list[str]:
    differences: list[str] = []
    for key in sorted(set(expected) | set(actual)):
        if key not in actual:
            differences.append(f"{key}: missing (expected verbs {expected[key]!r})")
        elif key not in expected:
            differences.append(f"{key}: unexpected (got verbs {actual[key]!r})")
        elif expected[key] != actual[key]:
            differences.append(f"{key}: expected verbs {expected[key]!r}, got {actual[key]!r}")
    return differences


def rules_changed(
    current: Sequence[PolicyRule],
    desired: Sequence[PolicyRule],
) -> tuple[bool, str]:
    """Check whether two rule sets grant different permissions.

    The order of api groups, resources, verbs and rules does not matter. An
    extra or missing group/resource pair counts as a change.

    Args:
        current: Rules of the stored object.
        desired: Rules of the desired object.

    Returns:
        Tuple of (changed, reason). The reason lists every differing
        group/resource pair and is empty when nothing changed.
    """
    current_map = build_sorted_policy_rule_map(current)
    desired_map = build_sorted_policy_rule_map(desired)

    differences = _diff_rule_maps(desired_map, current_map)
    if differences:
        return True, f"diff found in the policy rules: {'; '.join(differences)}"
    return False, ""


def validate_rule_set(rules: Sequence[PolicyRule]) -> None:
    """Reject a rule set in which two rules cover the same group/resource pair.

    Args:
        rules: Desired rule set.

    Raises:
        OverlappingRulesError: If any group/resource pair appears in more than
            one rule.
    """
    seen: set[str] = set()
    overlapping: list[str] = []
    for rule in rules:
        for key in dict.fromkeys(_rule_keys(rule)):
            if key in seen and key not in overlapping:
                overlapping.append(key)
            seen.add(key)
    if overlapping:
        raise OverlappingRulesError(overlapping)


# =============================================================================
# Bindings
# =============================================================================


def _reason(what: list[str]) -> str:
    if not what:
        return ""
    return f"following fields changed: {','.join(what)}"


def role_binding_changed(current: B, desired: B) -> BindingChange[B]:
    """Compare a single-subject binding with its desired state.

    The role reference name and the first subject's name and namespace are
    checked independently and only the drifted fields are overwritten on the
    returned copy. A current binding without subjects receives the desired
    subjects.

    Args:
        current: Binding as stored.
        desired: Desired binding.

    Returns:
        BindingChange with reasons among ``role-name``, ``subject-name``,
        ``subject-namespace`` and ``subjects``.
    """
    what: list[str] = []

    role_ref = current.role_ref
    if current.role_ref.name != desired.role_ref.name:
        role_ref = role_ref.model_copy(update={"name": desired.role_ref.name})
        what.append("role-name")

    subjects = list(current.subjects)
    if desired.subjects:
        wanted = desired.subjects[0]
        if subjects:
            first = subjects[0]
            if first.name != wanted.name:
                first = first.model_copy(update={"name": wanted.name})
                what.append("subject-name")
            if first.namespace != wanted.namespace:
                first = first.model_copy(update={"namespace": wanted.namespace})
                what.append("subject-namespace")
            subjects[0] = first
        else:
            subjects = list(desired.subjects)
            what.append("subjects")

    if not what:
        return BindingChange(changed=False, updated=current, reason="")

    updated = current.model_copy(update={"role_ref": role_ref, "subjects": subjects})
    return BindingChange(changed=True, updated=updated, reason=_reason(what))


def _describe_subject(subject: Subject) -> str:
    return f"{subject.name}, Namespace: {subject.namespace or ''}"


def cluster_role_binding_changed(current: B, desired: B) -> BindingChange[B]:
    """Compare a multi-subject binding with its desired state.

    Subjects are matched by name and namespace. A desired subject missing from
    the current binding, or a current subject no longer desired, marks the
    binding as changed; the returned copy then carries the desired subject
    list as a whole, so subjects dropped from the desired set are revoked on
    the same pass. Subject order alone is not a change.

    Args:
        current: Binding as stored.
        desired: Desired binding.

    Returns:
        BindingChange with reasons ``role-name``, ``subject: <name>, ...``
        and ``removed subject: <name>, ...``.
    """
    what: list[str] = []

    role_ref = current.role_ref
    if current.role_ref.name != desired.role_ref.name:
        role_ref = role_ref.model_copy(update={"name": desired.role_ref.name})
        what.append("role-name")

    current_keys = {subject.key for subject in current.subjects}
    desired_keys = {subject.key for subject in desired.subjects}
    for subject in desired.subjects:
        if subject.key not in current_keys:
            what.append(f"subject: {_describe_subject(subject)}")
    for subject in current.subjects:
        if subject.key not in desired_keys:
            what.append(f"removed subject: {_describe_subject(subject)}")

    if not what:
        return BindingChange(changed=False, updated=current, reason="")

    updated = current.model_copy(
        update={"role_ref": role_ref, "subjects": list(desired.subjects)}
    )
    return BindingChange(changed=True, updated=updated, reason=_reason(what))


__all__ = [
    "BindingChange",
    "build_sorted_policy_rule_map",
    "cluster_role_binding_changed",
    "role_binding_changed",
    "rules_changed",
    "validate_rule_set",
]
