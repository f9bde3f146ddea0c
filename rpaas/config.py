"""RpaasConfig - process-wide settings injected into the manager."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigError
from .models import PlanSpec

DEFAULT_SERVICE_NAME = "rpaasv2"
DEFAULT_PURGE_PORT = 8800
DEFAULT_PURGE_TIMEOUT = 10.0


@dataclass(frozen=True)
class FlavorConfig:
    """A named plan template fragment selectable with a `flavor=<name>` tag."""

    name: str
    description: str = ""
    spec: PlanSpec = field(default_factory=PlanSpec)


@dataclass(frozen=True)
class RpaasConfig:
    """Read-only configuration shared by every manager operation.

    Attributes:
        service_name: Name of the service, also labels created objects
        namespace: Namespace for instances, plans and owned objects
        flavors: Flavors offered to instance creation
        team_affinity: Team name -> pod affinity applied to new instances
        purge_port: Management port of each replica
        purge_timeout: Seconds allowed for each purge request. The fan-out may
            take as long as the requests one replica needs, run back to back
        kube_config: kubeconfig path used outside the cluster
    """

    service_name: str = DEFAULT_SERVICE_NAME
    namespace: str = ""
    flavors: List[FlavorConfig] = field(default_factory=list)
    team_affinity: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    purge_port: int = DEFAULT_PURGE_PORT
    purge_timeout: float = DEFAULT_PURGE_TIMEOUT
    kube_config: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.namespace:
            object.__setattr__(self, "namespace", self.service_name)

    def get_flavor(self, name: str) -> Optional[FlavorConfig]:
        for flavor in self.flavors:
            if flavor.name == name:
                return flavor
        return None

    @classmethod
    def load(cls, path: Union[str, Path, None] = None) -> "RpaasConfig":
        """Build configuration from defaults, a YAML file and the environment.

        The file is `path`, else $RPAAS_CONFIG; a missing file is skipped.
        Environment variables override file values.

        Raises:
            ConfigError: If the file is malformed or a value has the wrong type
        """
        values: Dict[str, Any] = {}

        if path is None:
            path = os.environ.get("RPAAS_CONFIG")
        if path:
            values.update(_read_yaml(Path(path)))

        for env, key in (
            ("RPAAS_SERVICE_NAME", "service_name"),
            ("RPAAS_NAMESPACE", "namespace"),
            ("RPAAS_PURGE_PORT", "purge_port"),
            ("RPAAS_PURGE_TIMEOUT", "purge_timeout"),
        ):
            if os.environ.get(env):
                values[key] = os.environ[env]

        return cls._from_values(values)

    @classmethod
    def _from_values(cls, values: Dict[str, Any]) -> "RpaasConfig":
        try:
            flavors = [_parse_flavor(f) for f in values.get("flavors") or []]
            team_affinity = values.get("team_affinity") or {}
            if not isinstance(team_affinity, dict):
                raise ConfigError("team_affinity must be a mapping")
            return cls(
                service_name=str(values.get("service_name") or DEFAULT_SERVICE_NAME),
                namespace=str(values.get("namespace") or ""),
                flavors=flavors,
                team_affinity=team_affinity,
                purge_port=int(values.get("purge_port", DEFAULT_PURGE_PORT)),
                purge_timeout=float(values.get("purge_timeout", DEFAULT_PURGE_TIMEOUT)),
                kube_config=values.get("kube_config"),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}")


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {path}: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {path}: expected a mapping")
    return data


def _parse_flavor(data: Any) -> FlavorConfig:
    if not isinstance(data, dict) or not data.get("name"):
        raise ConfigError("each flavor needs a name")
    return FlavorConfig(
        name=data["name"],
        description=data.get("description", ""),
        spec=PlanSpec.from_dict(data.get("spec") or {}),
    )
