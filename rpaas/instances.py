"""Instance lifecycle: create, update, delete and application binding."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import FlavorConfig, RpaasConfig
from .errors import ConflictError, NotFoundError, ResourceNotFoundError, ValidationError
from .models import (
    InstanceSpec,
    ObjectMeta,
    PlanSpec,
    PodTemplate,
    RpaasInstance,
    RpaasPlan,
    ServiceSpec,
)
from .plans import get_plan, plan_template_from_tags
from .store import ObjectStore, fetch_instance

logger = logging.getLogger(__name__)

LABEL_PREFIX = "rpaas.extensions.tsuru.io"
SERVICE_NAME_LABEL = f"{LABEL_PREFIX}/service-name"
INSTANCE_NAME_LABEL = f"{LABEL_PREFIX}/instance-name"
TEAM_OWNER_LABEL = f"{LABEL_PREFIX}/team-owner"
DESCRIPTION_ANNOTATION = f"{LABEL_PREFIX}/description"
TAGS_ANNOTATION = f"{LABEL_PREFIX}/tags"
TEAM_OWNER_ANNOTATION = f"{LABEL_PREFIX}/team-owner"


@dataclass
class CreateArgs:
    name: str = ""
    team: str = ""
    plan: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class UpdateInstanceArgs:
    description: str = ""
    plan: str = ""
    tags: List[str] = field(default_factory=list)
    team: str = ""


@dataclass
class BindAppArgs:
    app_name: str = ""
    app_host: str = ""
    user: str = ""
    event_id: str = ""


def parse_tags(tags: List[str]) -> Dict[str, str]:
    """Collect `key=value` tags. Plain tags carry no parameters and are skipped."""
    params = {}
    for tag in tags:
        if "=" in tag:
            key, value = tag.split("=", 1)
            params[key] = value
    return params


def labels_for_instance(service_name: str, instance_name: str) -> Dict[str, str]:
    return {
        SERVICE_NAME_LABEL: service_name,
        INSTANCE_NAME_LABEL: instance_name,
        "rpaas_service": service_name,
        "rpaas_instance": instance_name,
    }


class InstanceManager:
    """Creates and reshapes instances using the injected configuration."""

    def __init__(self, store: ObjectStore, config: RpaasConfig):
        self.store = store
        self.config = config

    @property
    def namespace(self) -> str:
        return self.config.namespace

    def _plan_template(self, tags: List[str]) -> Optional[PlanSpec]:
        params = parse_tags(tags)
        flavor: Optional[FlavorConfig] = None
        if "flavor" in params:
            flavor = self.config.get_flavor(params["flavor"])
            if flavor is None:
                raise ValidationError(f'flavor "{params["flavor"]}" not found')
        return plan_template_from_tags(params, flavor.spec if flavor else None)

    def create_instance(self, args: CreateArgs) -> RpaasInstance:
        """Create a new instance.

        Raises:
            ValidationError: If required fields, the plan or the tags are invalid
            ConflictError: If an instance with the same name already exists
        """
        if not args.name:
            raise ValidationError("name is required")
        if not args.team:
            raise ValidationError("team name is required")

        if args.plan:
            try:
                plan = get_plan(self.store, self.namespace, args.plan)
            except NotFoundError:
                raise ValidationError("invalid plan")
        else:
            plan = get_plan(self.store, self.namespace)

        plan_template = self._plan_template(args.tags)

        try:
            self.store.get_instance(self.namespace, args.name)
        except ResourceNotFoundError:
            pass
        else:
            raise ConflictError(f'rpaas instance named "{args.name}" already exists')

        labels = labels_for_instance(self.config.service_name, args.name)
        labels[TEAM_OWNER_LABEL] = args.team

        affinity = self.config.team_affinity.get(args.team)
        instance = RpaasInstance(
            metadata=ObjectMeta(
                name=args.name,
                namespace=self.namespace,
                labels=dict(labels),
                annotations={
                    DESCRIPTION_ANNOTATION: args.description,
                    TAGS_ANNOTATION: ",".join(sorted(args.tags)),
                    TEAM_OWNER_ANNOTATION: args.team,
                },
            ),
            spec=InstanceSpec(
                replicas=1,
                plan_name=plan.name,
                plan_template=plan_template,
                service=ServiceSpec(type="LoadBalancer", labels=dict(labels)),
                pod_template=PodTemplate(
                    labels=dict(labels),
                    affinity=dict(affinity) if affinity is not None else None,
                ),
            ),
        )
        self.store.create_instance(instance)
        logger.info(f"Created instance {args.name} for team {args.team} with plan {plan.name}")
        return instance

    def update_instance(self, name: str, args: UpdateInstanceArgs) -> None:
        instance = fetch_instance(self.store, self.namespace, name)

        if args.plan:
            plan = get_plan(self.store, self.namespace, args.plan)
            instance.spec.plan_name = plan.name

        instance.spec.plan_template = self._plan_template(args.tags)

        annotations = instance.metadata.annotations
        annotations[DESCRIPTION_ANNOTATION] = args.description
        annotations[TAGS_ANNOTATION] = ",".join(sorted(args.tags))
        if args.team:
            annotations[TEAM_OWNER_ANNOTATION] = args.team
            instance.metadata.labels[TEAM_OWNER_LABEL] = args.team
            instance.spec.pod_template.labels[TEAM_OWNER_LABEL] = args.team

        self.store.update_instance(instance)
        logger.info(f"Updated instance {name}")

    def delete_instance(self, name: str) -> None:
        fetch_instance(self.store, self.namespace, name)
        self.store.delete_instance(self.namespace, name)
        logger.info(f"Deleted instance {name}")

    def get_instance(self, name: str) -> RpaasInstance:
        return fetch_instance(self.store, self.namespace, name)

    def get_plans(self) -> List[RpaasPlan]:
        return sorted(self.store.list_plans(self.namespace), key=lambda p: p.name)

    def get_flavors(self) -> List[FlavorConfig]:
        return list(self.config.flavors)

    def bind_app(self, name: str, args: BindAppArgs) -> None:
        instance = fetch_instance(self.store, self.namespace, name)
        if not args.app_host:
            raise ValidationError("application host cannot be empty")
        if instance.spec.host:
            raise ConflictError("instance already bound with another application")

        instance.spec.host = args.app_host
        self.store.update_instance(instance)
        logger.info(f"Bound instance {name} to {args.app_host}")

    def unbind_app(self, name: str) -> None:
        instance = fetch_instance(self.store, self.namespace, name)
        if not instance.spec.host:
            raise ValidationError("instance not bound")

        instance.spec.host = ""
        self.store.update_instance(instance)
        logger.info(f"Unbound instance {name}")
