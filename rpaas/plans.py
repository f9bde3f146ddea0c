"""Plan resolution and plan template overrides."""

import json
from typing import Optional

from .errors import ConflictError, NotFoundError, ResourceNotFoundError, ValidationError
from .models import PlanSpec, RpaasPlan
from .store import ObjectStore


def get_plan(store: ObjectStore, namespace: str, name: str = "") -> RpaasPlan:
    """Return the plan called `name`, or the single default plan when empty.

    Raises:
        NotFoundError: If the named plan or any default plan is missing
        ConflictError: If more than one plan is marked default
    """
    if name:
        try:
            return store.get_plan(namespace, name)
        except ResourceNotFoundError:
            raise NotFoundError(f'plan "{name}" not found')

    defaults = [p for p in store.list_plans(namespace) if p.spec.default]
    if not defaults:
        raise NotFoundError("no default plan found")
    if len(defaults) > 1:
        names = ", ".join(sorted(p.name for p in defaults))
        raise ConflictError(f"several default plans found: [{names}]")
    return defaults[0]


def parse_plan_override(raw: str) -> PlanSpec:
    """Parse a `plan-override` tag value into a plan template fragment."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"invalid plan-override: {e.msg}")
    if not isinstance(data, dict):
        raise ValidationError("invalid plan-override: expected a JSON object")
    try:
        return PlanSpec.from_dict(data)
    except TypeError as e:
        raise ValidationError(f"invalid plan-override: {e}")


def plan_template_from_tags(
    tags: dict, flavor_spec: Optional[PlanSpec] = None
) -> Optional[PlanSpec]:
    """Select the plan template named by `flavor` or `plan-override` tags.

    `tags` maps tag names to values; `flavor_spec` is the resolved flavor, if
    any. Both kinds together are rejected.
    """
    has_flavor = "flavor" in tags
    has_override = "plan-override" in tags
    if has_flavor and has_override:
        raise ValidationError("cannot set both plan-override and flavor")
    if has_override:
        return parse_plan_override(tags["plan-override"])
    if has_flavor and flavor_spec is not None:
        return PlanSpec.from_dict(flavor_spec.to_dict())
    return None
