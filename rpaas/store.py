"""Object store access for rpaas instances and the cluster objects they own."""

import base64
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from .errors import ConflictError, NotFoundError, ResourceNotFoundError
from .models import (
    API_GROUP,
    API_VERSION,
    ConfigMap,
    Event,
    Nginx,
    Pod,
    RpaasInstance,
    RpaasPlan,
    Secret,
    Service,
)

logger = logging.getLogger(__name__)

INSTANCES = "rpaasinstances"
PLANS = "rpaasplans"
NGINX_GROUP = "nginx.tsuru.io"
NGINX_VERSION = "v1alpha1"
NGINXES = "nginxes"

DEFAULT_TIMEOUT = 10


class ObjectStore(ABC):
    """Typed access to the objects the control plane reads and writes.

    Lookups of missing objects raise ResourceNotFoundError.
    """

    @abstractmethod
    def get_instance(self, namespace: str, name: str) -> RpaasInstance: ...

    @abstractmethod
    def create_instance(self, instance: RpaasInstance) -> None: ...

    @abstractmethod
    def update_instance(self, instance: RpaasInstance) -> None: ...

    @abstractmethod
    def delete_instance(self, namespace: str, name: str) -> None: ...

    @abstractmethod
    def get_plan(self, namespace: str, name: str) -> RpaasPlan: ...

    @abstractmethod
    def list_plans(self, namespace: str) -> List[RpaasPlan]: ...

    @abstractmethod
    def get_config_map(self, namespace: str, name: str) -> ConfigMap: ...

    @abstractmethod
    def create_config_map(self, config_map: ConfigMap) -> None: ...

    @abstractmethod
    def update_config_map(self, config_map: ConfigMap) -> None: ...

    @abstractmethod
    def delete_config_map(self, namespace: str, name: str) -> None: ...

    @abstractmethod
    def get_secret(self, namespace: str, name: str) -> Secret: ...

    @abstractmethod
    def create_secret(self, secret: Secret) -> None: ...

    @abstractmethod
    def update_secret(self, secret: Secret) -> None: ...

    @abstractmethod
    def get_nginx(self, namespace: str, name: str) -> Nginx: ...

    @abstractmethod
    def get_pod(self, namespace: str, name: str) -> Pod: ...

    @abstractmethod
    def get_service(self, namespace: str, name: str) -> Service: ...

    @abstractmethod
    def list_events(self, namespace: str, kind: str, name: str) -> List[Event]:
        """List events whose involved object is `kind`/`name`."""


def _init_k8s_clients(kube_config: Optional[str] = None) -> client.ApiClient:
    """Load in-cluster config, falling back to a kubeconfig file."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        # Local development
        config.load_kube_config(config_file=kube_config)
    return client.ApiClient()


@contextmanager
def _api_errors(plural: str, name: str, write: bool = False) -> Iterator[None]:
    """Translate kubernetes API errors into rpaas errors."""
    try:
        yield
    except ApiException as e:
        if e.status == 404:
            raise ResourceNotFoundError(plural, name) from e
        if e.status == 409:
            if write:
                raise ConflictError(
                    f'{plural} "{name}" was modified concurrently, retry the operation'
                ) from e
            raise ConflictError(f'{plural} "{name}" already exists') from e
        logger.error(f"Kubernetes API error on {plural}/{name}: {e}")
        raise


def _b64decode_map(data: Optional[dict]) -> dict:
    return {k: base64.b64decode(v) for k, v in (data or {}).items()}


def _b64encode_map(data: dict) -> dict:
    return {k: base64.b64encode(v).decode("ascii") for k, v in data.items()}


class KubernetesStore(ObjectStore):
    """ObjectStore backed by the Kubernetes API.

    The client has no informer cache, so every read goes to the API server.
    """

    def __init__(
        self,
        api_client: Optional[client.ApiClient] = None,
        kube_config: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if api_client is None:
            api_client = _init_k8s_clients(kube_config)
        self.core = client.CoreV1Api(api_client)
        self.custom = client.CustomObjectsApi(api_client)
        self.timeout = timeout

    # --- rpaas instances ---

    def get_instance(self, namespace: str, name: str) -> RpaasInstance:
        with _api_errors(INSTANCES, name):
            obj = self.custom.get_namespaced_custom_object(
                API_GROUP, API_VERSION, namespace, INSTANCES, name,
                _request_timeout=self.timeout,
            )
        return RpaasInstance.from_dict(obj)

    def create_instance(self, instance: RpaasInstance) -> None:
        with _api_errors(INSTANCES, instance.name):
            self.custom.create_namespaced_custom_object(
                API_GROUP, API_VERSION, instance.namespace, INSTANCES, instance.to_dict(),
                _request_timeout=self.timeout,
            )
        logger.info(f"Created rpaas instance {instance.namespace}/{instance.name}")

    def update_instance(self, instance: RpaasInstance) -> None:
        with _api_errors(INSTANCES, instance.name, write=True):
            self.custom.replace_namespaced_custom_object(
                API_GROUP, API_VERSION, instance.namespace, INSTANCES, instance.name,
                instance.to_dict(),
                _request_timeout=self.timeout,
            )

    def delete_instance(self, namespace: str, name: str) -> None:
        with _api_errors(INSTANCES, name):
            self.custom.delete_namespaced_custom_object(
                API_GROUP, API_VERSION, namespace, INSTANCES, name,
                _request_timeout=self.timeout,
            )
        logger.info(f"Deleted rpaas instance {namespace}/{name}")

    # --- plans ---

    def get_plan(self, namespace: str, name: str) -> RpaasPlan:
        with _api_errors(PLANS, name):
            obj = self.custom.get_namespaced_custom_object(
                API_GROUP, API_VERSION, namespace, PLANS, name,
                _request_timeout=self.timeout,
            )
        return RpaasPlan.from_dict(obj)

    def list_plans(self, namespace: str) -> List[RpaasPlan]:
        with _api_errors(PLANS, ""):
            result = self.custom.list_namespaced_custom_object(
                API_GROUP, API_VERSION, namespace, PLANS,
                _request_timeout=self.timeout,
            )
        return [RpaasPlan.from_dict(item) for item in result.get("items", [])]

    # --- config maps ---

    def get_config_map(self, namespace: str, name: str) -> ConfigMap:
        with _api_errors("configmaps", name):
            cm = self.core.read_namespaced_config_map(
                name=name, namespace=namespace, _request_timeout=self.timeout,
            )
        return ConfigMap(
            name=cm.metadata.name,
            namespace=cm.metadata.namespace,
            data=dict(cm.data or {}),
            binary_data=_b64decode_map(cm.binary_data),
            labels=dict(cm.metadata.labels or {}),
        )

    def _config_map_body(self, config_map: ConfigMap) -> dict:
        body = {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {
                "name": config_map.name,
                "namespace": config_map.namespace,
                "labels": dict(config_map.labels),
            },
        }
        if config_map.data:
            body["data"] = dict(config_map.data)
        if config_map.binary_data:
            body["binaryData"] = _b64encode_map(config_map.binary_data)
        return body

    def create_config_map(self, config_map: ConfigMap) -> None:
        with _api_errors("configmaps", config_map.name):
            self.core.create_namespaced_config_map(
                namespace=config_map.namespace,
                body=self._config_map_body(config_map),
                _request_timeout=self.timeout,
            )

    def update_config_map(self, config_map: ConfigMap) -> None:
        with _api_errors("configmaps", config_map.name, write=True):
            self.core.replace_namespaced_config_map(
                name=config_map.name,
                namespace=config_map.namespace,
                body=self._config_map_body(config_map),
                _request_timeout=self.timeout,
            )

    def delete_config_map(self, namespace: str, name: str) -> None:
        with _api_errors("configmaps", name):
            self.core.delete_namespaced_config_map(
                name=name, namespace=namespace, _request_timeout=self.timeout,
            )

    # --- secrets ---

    def get_secret(self, namespace: str, name: str) -> Secret:
        with _api_errors("secrets", name):
            secret = self.core.read_namespaced_secret(
                name=name, namespace=namespace, _request_timeout=self.timeout,
            )
        return Secret(
            name=secret.metadata.name,
            namespace=secret.metadata.namespace,
            data=_b64decode_map(secret.data),
            labels=dict(secret.metadata.labels or {}),
        )

    def _secret_body(self, secret: Secret) -> dict:
        return {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {
                "name": secret.name,
                "namespace": secret.namespace,
                "labels": dict(secret.labels),
            },
            "data": _b64encode_map(secret.data),
        }

    def create_secret(self, secret: Secret) -> None:
        with _api_errors("secrets", secret.name):
            self.core.create_namespaced_secret(
                namespace=secret.namespace,
                body=self._secret_body(secret),
                _request_timeout=self.timeout,
            )

    def update_secret(self, secret: Secret) -> None:
        with _api_errors("secrets", secret.name, write=True):
            self.core.replace_namespaced_secret(
                name=secret.name,
                namespace=secret.namespace,
                body=self._secret_body(secret),
                _request_timeout=self.timeout,
            )

    # --- runtime objects ---

    def get_nginx(self, namespace: str, name: str) -> Nginx:
        with _api_errors(NGINXES, name):
            obj = self.custom.get_namespaced_custom_object(
                NGINX_GROUP, NGINX_VERSION, namespace, NGINXES, name,
                _request_timeout=self.timeout,
            )
        return Nginx.from_dict(obj)

    def get_pod(self, namespace: str, name: str) -> Pod:
        with _api_errors("pods", name):
            pod = self.core.read_namespaced_pod(
                name=name, namespace=namespace, _request_timeout=self.timeout,
            )
        statuses = pod.status.container_statuses or []
        return Pod(
            name=pod.metadata.name,
            namespace=pod.metadata.namespace,
            ip=pod.status.pod_ip or "",
            containers_ready=[bool(s.ready) for s in statuses],
        )

    def get_service(self, namespace: str, name: str) -> Service:
        with _api_errors("services", name):
            svc = self.core.read_namespaced_service(
                name=name, namespace=namespace, _request_timeout=self.timeout,
            )
        ingress = []
        if svc.status and svc.status.load_balancer and svc.status.load_balancer.ingress:
            ingress = [i.ip or i.hostname for i in svc.status.load_balancer.ingress]
        return Service(
            name=svc.metadata.name,
            namespace=svc.metadata.namespace,
            type=svc.spec.type or "ClusterIP",
            cluster_ip=svc.spec.cluster_ip or "",
            load_balancer_ingress=[addr for addr in ingress if addr],
        )

    def list_events(self, namespace: str, kind: str, name: str) -> List[Event]:
        selector = f"involvedObject.kind={kind},involvedObject.name={name}"
        with _api_errors("events", name):
            events = self.core.list_namespaced_event(
                namespace=namespace,
                field_selector=selector,
                _request_timeout=self.timeout,
            )
        result = []
        for ev in events.items:
            source = ev.source
            result.append(Event(
                name=ev.metadata.name,
                namespace=ev.metadata.namespace,
                involved_kind=ev.involved_object.kind,
                involved_name=ev.involved_object.name,
                component=(source.component or "") if source else "",
                host=(source.host or "") if source else "",
                message=ev.message or "",
            ))
        return result


def fetch_instance(store: ObjectStore, namespace: str, name: str) -> RpaasInstance:
    """Read an instance, reporting a missing one with the rpaas wording."""
    try:
        return store.get_instance(namespace, name)
    except ResourceNotFoundError:
        raise NotFoundError(f'rpaas instance "{name}" not found')
