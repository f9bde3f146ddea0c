"""Object model for rpaas custom resources and the cluster objects they use.

RpaasInstance and RpaasPlan mirror the `extensions.tsuru.io/v1alpha1` custom
resources. to_dict()/from_dict() translate to and from the camelCase JSON
form the cluster stores, omitting empty fields. Fields this module does not
model (finalizers, owner references, operator-managed spec fields) are kept
in `extra` and written back unchanged.

ConfigMap, Secret, Pod, Service, Event and Nginx carry only the fields the
control plane reads.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


API_GROUP = "extensions.tsuru.io"
API_VERSION = "v1alpha1"
INSTANCE_KIND = "RpaasInstance"
PLAN_KIND = "RpaasPlan"


def _unmodelled(data: Dict[str, Any], known: tuple) -> Dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in data.items() if k not in known}


class BlockType(Enum):
    """Scopes where a configuration block can be attached."""

    ROOT = "root"
    HTTP = "http"
    SERVER = "server"
    LUA_SERVER = "lua-server"
    LUA_WORKER = "lua-worker"

    @classmethod
    def from_name(cls, name: str) -> Optional["BlockType"]:
        """Return the block type for a name, or None if not allowed."""
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass
class ConfigMapKeyRef:
    """Reference to a key inside a ConfigMap."""

    name: str
    key: str
    optional: Optional[bool] = None

    @property
    def required(self) -> bool:
        """A reference is required only when explicitly marked non-optional."""
        return self.optional is False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "key": self.key}
        if self.optional is not None:
            data["optional"] = self.optional
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigMapKeyRef":
        return cls(
            name=data.get("name", ""),
            key=data.get("key", ""),
            optional=data.get("optional"),
        )


@dataclass
class ValueSource:
    """External source for a value."""

    config_map_key_ref: Optional[ConfigMapKeyRef] = None
    namespace: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.config_map_key_ref is not None:
            data["configMapKeyRef"] = self.config_map_key_ref.to_dict()
        if self.namespace:
            data["namespace"] = self.namespace
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValueSource":
        ref = data.get("configMapKeyRef")
        return cls(
            config_map_key_ref=ConfigMapKeyRef.from_dict(ref) if ref else None,
            namespace=data.get("namespace", ""),
        )


@dataclass
class Value:
    """Either an inline value or a reference to one stored elsewhere."""

    value: str = ""
    value_from: Optional[ValueSource] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.value:
            data["value"] = self.value
        if self.value_from is not None:
            data["valueFrom"] = self.value_from.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Value":
        source = data.get("valueFrom")
        return cls(
            value=data.get("value", ""),
            value_from=ValueSource.from_dict(source) if source else None,
        )


@dataclass
class Location:
    """A path rule: either inline configuration or a forwarding destination."""

    path: str
    content: Optional[Value] = None
    destination: str = ""
    force_https: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path}
        if self.content is not None:
            data["content"] = self.content.to_dict()
        if self.destination:
            data["destination"] = self.destination
        if self.force_https:
            data["forceHTTPS"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        content = data.get("content")
        return cls(
            path=data.get("path", ""),
            content=Value.from_dict(content) if content is not None else None,
            destination=data.get("destination", ""),
            force_https=bool(data.get("forceHTTPS", False)),
        )


@dataclass
class TLSSecretItem:
    """Pair of Secret keys holding one certificate and its private key."""

    certificate_field: str
    key_field: str

    def to_dict(self) -> Dict[str, Any]:
        return {"certificateField": self.certificate_field, "keyField": self.key_field}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TLSSecretItem":
        return cls(
            certificate_field=data.get("certificateField", ""),
            key_field=data.get("keyField", ""),
        )


@dataclass
class TLSSecret:
    """Certificates served by an instance, all stored in one Secret."""

    secret_name: str
    items: List[TLSSecretItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "secretName": self.secret_name,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TLSSecret":
        return cls(
            secret_name=data.get("secretName", ""),
            items=[TLSSecretItem.from_dict(i) for i in data.get("items") or []],
        )


@dataclass
class FilesRef:
    """Extra files of an instance: ConfigMap name plus storage key -> path."""

    name: str
    files: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "files": dict(self.files)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilesRef":
        return cls(name=data.get("name", ""), files=dict(data.get("files") or {}))


@dataclass
class ServiceSpec:
    """How the instance is exposed."""

    type: str = ""
    load_balancer_ip: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    FIELDS = ("type", "loadBalancerIP", "labels", "annotations")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = copy.deepcopy(self.extra)
        if self.type:
            data["type"] = self.type
        if self.load_balancer_ip:
            data["loadBalancerIP"] = self.load_balancer_ip
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceSpec":
        return cls(
            type=data.get("type", ""),
            load_balancer_ip=data.get("loadBalancerIP", ""),
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
            extra=_unmodelled(data, cls.FIELDS),
        )


@dataclass
class PodTemplate:
    """Pod-level metadata and scheduling for the instance replicas."""

    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    affinity: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    FIELDS = ("labels", "annotations", "affinity")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = copy.deepcopy(self.extra)
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.affinity is not None:
            data["affinity"] = copy.deepcopy(self.affinity)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PodTemplate":
        affinity = data.get("affinity")
        return cls(
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
            affinity=copy.deepcopy(affinity) if affinity is not None else None,
            extra=_unmodelled(data, cls.FIELDS),
        )


@dataclass
class PlanSpec:
    """Execution profile template. Also used as a plan override fragment.

    Template keys without a field here (resources, service, runtime settings
    read by the operator) travel in `extra`.
    """

    description: str = ""
    default: bool = False
    image: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    FIELDS = ("description", "default", "image", "config")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = copy.deepcopy(self.extra)
        if self.description:
            data["description"] = self.description
        if self.default:
            data["default"] = True
        if self.image:
            data["image"] = self.image
        if self.config:
            data["config"] = copy.deepcopy(self.config)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanSpec":
        config = data.get("config") or {}
        if not isinstance(config, dict):
            raise TypeError("config must be an object")
        return cls(
            description=data.get("description", ""),
            default=bool(data.get("default", False)),
            image=data.get("image", ""),
            config=copy.deepcopy(config),
            extra=_unmodelled(data, cls.FIELDS),
        )


@dataclass
class ObjectMeta:
    """Identity and metadata shared by every stored object."""

    name: str
    namespace: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    resource_version: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    FIELDS = ("name", "namespace", "labels", "annotations", "resourceVersion")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = copy.deepcopy(self.extra)
        data["name"] = self.name
        if self.namespace:
            data["namespace"] = self.namespace
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.resource_version:
            data["resourceVersion"] = self.resource_version
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObjectMeta":
        return cls(
            name=data.get("name", ""),
            namespace=data.get("namespace", ""),
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
            resource_version=data.get("resourceVersion", ""),
            extra=_unmodelled(data, cls.FIELDS),
        )


@dataclass
class InstanceSpec:
    """Desired state of a reverse proxy instance.

    Collections that are empty are stored as None, never as empty containers.
    """

    replicas: Optional[int] = None
    plan_name: str = ""
    plan_template: Optional[PlanSpec] = None
    blocks: Optional[Dict[BlockType, Value]] = None
    locations: Optional[List[Location]] = None
    certificates: Optional[TLSSecret] = None
    extra_files: Optional[FilesRef] = None
    host: str = ""
    service: Optional[ServiceSpec] = None
    pod_template: PodTemplate = field(default_factory=PodTemplate)
    extra: Dict[str, Any] = field(default_factory=dict)

    FIELDS = (
        "replicas", "planName", "planTemplate", "blocks", "locations",
        "certificates", "extraFiles", "host", "service", "podTemplate",
    )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = copy.deepcopy(self.extra)
        if self.replicas is not None:
            data["replicas"] = self.replicas
        if self.plan_name:
            data["planName"] = self.plan_name
        if self.plan_template is not None:
            data["planTemplate"] = self.plan_template.to_dict()
        if self.blocks is not None:
            data["blocks"] = {t.value: v.to_dict() for t, v in self.blocks.items()}
        if self.locations is not None:
            data["locations"] = [loc.to_dict() for loc in self.locations]
        if self.certificates is not None:
            data["certificates"] = self.certificates.to_dict()
        if self.extra_files is not None:
            data["extraFiles"] = self.extra_files.to_dict()
        if self.host:
            data["host"] = self.host
        if self.service is not None:
            data["service"] = self.service.to_dict()
        pod_template = self.pod_template.to_dict()
        if pod_template:
            data["podTemplate"] = pod_template
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstanceSpec":
        blocks = data.get("blocks")
        locations = data.get("locations")
        plan_template = data.get("planTemplate")
        certificates = data.get("certificates")
        extra_files = data.get("extraFiles")
        service = data.get("service")
        return cls(
            replicas=data.get("replicas"),
            plan_name=data.get("planName", ""),
            plan_template=PlanSpec.from_dict(plan_template) if plan_template is not None else None,
            blocks={BlockType(k): Value.from_dict(v) for k, v in blocks.items()} if blocks else None,
            locations=[Location.from_dict(loc) for loc in locations] if locations else None,
            certificates=TLSSecret.from_dict(certificates) if certificates else None,
            extra_files=FilesRef.from_dict(extra_files) if extra_files else None,
            host=data.get("host", ""),
            service=ServiceSpec.from_dict(service) if service is not None else None,
            pod_template=PodTemplate.from_dict(data.get("podTemplate") or {}),
            extra=_unmodelled(data, cls.FIELDS),
        )


@dataclass
class RpaasInstance:
    """A reverse proxy instance: the root of every mutation."""

    metadata: ObjectMeta
    spec: InstanceSpec = field(default_factory=InstanceSpec)
    extra: Dict[str, Any] = field(default_factory=dict)

    FIELDS = ("apiVersion", "kind", "metadata", "spec")

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = copy.deepcopy(self.extra)
        data.update({
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": INSTANCE_KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RpaasInstance":
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata") or {}),
            spec=InstanceSpec.from_dict(data.get("spec") or {}),
            extra=_unmodelled(data, cls.FIELDS),
        )


@dataclass
class RpaasPlan:
    """A named plan, optionally the default of its namespace."""

    metadata: ObjectMeta
    spec: PlanSpec = field(default_factory=PlanSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": PLAN_KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RpaasPlan":
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata") or {}),
            spec=PlanSpec.from_dict(data.get("spec") or {}),
        )


@dataclass
class ConfigMap:
    name: str
    namespace: str = ""
    data: Dict[str, str] = field(default_factory=dict)
    binary_data: Dict[str, bytes] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class Secret:
    name: str
    namespace: str = ""
    data: Dict[str, bytes] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class Pod:
    """A running replica."""

    name: str
    namespace: str = ""
    ip: str = ""
    containers_ready: List[bool] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        """Ready when every container reports ready."""
        return all(self.containers_ready)


@dataclass
class Service:
    name: str
    namespace: str = ""
    type: str = "ClusterIP"
    cluster_ip: str = ""
    load_balancer_ingress: List[str] = field(default_factory=list)


@dataclass
class Event:
    """A cluster event about some object."""

    name: str
    namespace: str = ""
    involved_kind: str = ""
    involved_name: str = ""
    component: str = ""
    host: str = ""
    message: str = ""


@dataclass
class Nginx:
    """The workload object backing an instance, as reported by its status."""

    name: str
    namespace: str = ""
    pods: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Nginx":
        metadata = data.get("metadata") or {}
        status = data.get("status") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            pods=[p["name"] for p in status.get("pods") or [] if p.get("name")],
            services=[s["name"] for s in status.get("services") or [] if s.get("name")],
        )
