"""Shared test fixtures."""

import copy

import pytest

from rpaas.config import RpaasConfig
from rpaas.errors import ConflictError, ResourceNotFoundError
from rpaas.manager import RpaasManager
from rpaas.models import (
    ConfigMap,
    Event,
    InstanceSpec,
    Nginx,
    ObjectMeta,
    PlanSpec,
    Pod,
    RpaasInstance,
    RpaasPlan,
    Secret,
    Service,
)
from rpaas.store import ObjectStore

NAMESPACE = "rpaasv2"


class FakeStore(ObjectStore):
    """In-memory ObjectStore. Reads and writes work on copies, like the API."""

    def __init__(self):
        self.instances = {}
        self.plans = {}
        self.config_maps = {}
        self.secrets = {}
        self.nginxes = {}
        self.pods = {}
        self.services = {}
        self.events = []

    @staticmethod
    def _get(bucket, plural, namespace, name):
        try:
            return copy.deepcopy(bucket[(namespace, name)])
        except KeyError:
            raise ResourceNotFoundError(plural, name)

    @staticmethod
    def _create(bucket, plural, obj, namespace, name):
        if (namespace, name) in bucket:
            raise ConflictError(f'{plural} "{name}" already exists')
        bucket[(namespace, name)] = copy.deepcopy(obj)

    @staticmethod
    def _update(bucket, plural, obj, namespace, name):
        if (namespace, name) not in bucket:
            raise ResourceNotFoundError(plural, name)
        bucket[(namespace, name)] = copy.deepcopy(obj)

    @staticmethod
    def _delete(bucket, plural, namespace, name):
        if bucket.pop((namespace, name), None) is None:
            raise ResourceNotFoundError(plural, name)

    # instances are kept in their serialized form
    def get_instance(self, namespace, name):
        data = self._get(self.instances, "rpaasinstances", namespace, name)
        return RpaasInstance.from_dict(data)

    def create_instance(self, instance):
        self._create(self.instances, "rpaasinstances", instance.to_dict(), instance.namespace, instance.name)

    def update_instance(self, instance):
        self._update(self.instances, "rpaasinstances", instance.to_dict(), instance.namespace, instance.name)

    def delete_instance(self, namespace, name):
        self._delete(self.instances, "rpaasinstances", namespace, name)

    def get_plan(self, namespace, name):
        return RpaasPlan.from_dict(self._get(self.plans, "rpaasplans", namespace, name))

    def list_plans(self, namespace):
        return [RpaasPlan.from_dict(copy.deepcopy(d)) for (ns, _), d in self.plans.items() if ns == namespace]

    def get_config_map(self, namespace, name):
        return self._get(self.config_maps, "configmaps", namespace, name)

    def create_config_map(self, config_map):
        self._create(self.config_maps, "configmaps", config_map, config_map.namespace, config_map.name)

    def update_config_map(self, config_map):
        self._update(self.config_maps, "configmaps", config_map, config_map.namespace, config_map.name)

    def delete_config_map(self, namespace, name):
        self._delete(self.config_maps, "configmaps", namespace, name)

    def get_secret(self, namespace, name):
        return self._get(self.secrets, "secrets", namespace, name)

    def create_secret(self, secret):
        self._create(self.secrets, "secrets", secret, secret.namespace, secret.name)

    def update_secret(self, secret):
        self._update(self.secrets, "secrets", secret, secret.namespace, secret.name)

    def get_nginx(self, namespace, name):
        return self._get(self.nginxes, "nginxes", namespace, name)

    def get_pod(self, namespace, name):
        return self._get(self.pods, "pods", namespace, name)

    def get_service(self, namespace, name):
        return self._get(self.services, "services", namespace, name)

    def list_events(self, namespace, kind, name):
        return [
            copy.deepcopy(e) for e in self.events
            if e.namespace == namespace and e.involved_kind == kind and e.involved_name == name
        ]

    # --- seeding helpers ---

    def add_instance(self, name, namespace=NAMESPACE, **spec):
        instance = RpaasInstance(
            metadata=ObjectMeta(name=name, namespace=namespace),
            spec=InstanceSpec(**spec),
        )
        self.create_instance(instance)
        return instance

    def add_plan(self, name, namespace=NAMESPACE, **spec):
        plan = RpaasPlan(metadata=ObjectMeta(name=name, namespace=namespace), spec=PlanSpec(**spec))
        self.plans[(namespace, name)] = plan.to_dict()
        return plan

    def add_config_map(self, name, namespace=NAMESPACE, **kwargs):
        cm = ConfigMap(name=name, namespace=namespace, **kwargs)
        self.config_maps[(namespace, name)] = cm
        return cm

    def add_nginx(self, name, pods=(), services=(), namespace=NAMESPACE):
        nginx = Nginx(name=name, namespace=namespace, pods=list(pods), services=list(services))
        self.nginxes[(namespace, name)] = nginx
        return nginx

    def add_pod(self, name, ip="", ready=True, namespace=NAMESPACE):
        pod = Pod(name=name, namespace=namespace, ip=ip, containers_ready=[ready])
        self.pods[(namespace, name)] = pod
        return pod

    def add_service(self, name, namespace=NAMESPACE, **kwargs):
        svc = Service(name=name, namespace=namespace, **kwargs)
        self.services[(namespace, name)] = svc
        return svc

    def add_event(self, involved_name, message, component="", host="", kind="Pod", namespace=NAMESPACE):
        event = Event(
            name=f"{involved_name}.{len(self.events)}",
            namespace=namespace,
            involved_kind=kind,
            involved_name=involved_name,
            component=component,
            host=host,
            message=message,
        )
        self.events.append(event)
        return event


@pytest.fixture
def store():
    """Empty in-memory object store."""
    return FakeStore()


@pytest.fixture
def config():
    """Default configuration, serving the rpaasv2 namespace."""
    return RpaasConfig()


@pytest.fixture
def cache_manager(mocker):
    """Cache manager that records purge calls."""
    return mocker.Mock()


@pytest.fixture
def manager(store, config, cache_manager):
    """RpaasManager over the in-memory store."""
    return RpaasManager(store, config, cache_manager=cache_manager)
