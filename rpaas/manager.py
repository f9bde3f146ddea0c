"""RpaasManager - single entry point to every control-plane operation."""

from typing import Dict, List, Optional

from .blocks import BlockManager, ConfigurationBlock
from .certificates import CertificateManager
from .config import FlavorConfig, RpaasConfig
from .extra_files import ExtraFileManager, File
from .instances import BindAppArgs, CreateArgs, InstanceManager, UpdateInstanceArgs
from .models import RpaasInstance, RpaasPlan
from .nginx import MAX_REQUESTS_PER_PURGE, NginxCacheManager
from .purge import CacheManager, CachePurgeCoordinator, PurgeCacheArgs
from .routes import Route, RouteManager
from .status import PodStatus, StatusAggregator
from .store import KubernetesStore, ObjectStore


class RpaasManager:
    """Composes the per-facet managers over one object store.

    `store` serves writes and generic reads. `live_store` serves status and
    purge reads, which must observe uncached replica state; it defaults to
    `store`.
    """

    def __init__(
        self,
        store: ObjectStore,
        config: Optional[RpaasConfig] = None,
        live_store: Optional[ObjectStore] = None,
        cache_manager: Optional[CacheManager] = None,
    ):
        self.config = config or RpaasConfig()
        self.store = store
        self.live_store = live_store or store
        if cache_manager is None:
            cache_manager = NginxCacheManager(
                port=self.config.purge_port, timeout=self.config.purge_timeout,
            )

        ns = self.config.namespace
        self.instances = InstanceManager(store, self.config)
        self.blocks = BlockManager(store, ns)
        self.routes = RouteManager(store, ns)
        self.certificates = CertificateManager(store, ns)
        self.extra_files = ExtraFileManager(store, ns)
        self.status = StatusAggregator(self.live_store, ns)
        self.purger = CachePurgeCoordinator(
            self.live_store, ns, cache_manager,
            timeout=self.config.purge_timeout * MAX_REQUESTS_PER_PURGE,
        )

    @classmethod
    def from_config(cls, config: RpaasConfig) -> "RpaasManager":
        """Build a manager talking to the cluster."""
        store = KubernetesStore(kube_config=config.kube_config)
        return cls(store, config)

    # --- instances ---

    def create_instance(self, args: CreateArgs) -> RpaasInstance:
        return self.instances.create_instance(args)

    def update_instance(self, name: str, args: UpdateInstanceArgs) -> None:
        self.instances.update_instance(name, args)

    def delete_instance(self, name: str) -> None:
        self.instances.delete_instance(name)

    def get_instance(self, name: str) -> RpaasInstance:
        return self.instances.get_instance(name)

    def get_plans(self) -> List[RpaasPlan]:
        return self.instances.get_plans()

    def get_flavors(self) -> List[FlavorConfig]:
        return self.instances.get_flavors()

    def bind_app(self, name: str, args: BindAppArgs) -> None:
        self.instances.bind_app(name, args)

    def unbind_app(self, name: str) -> None:
        self.instances.unbind_app(name)

    def get_instance_info(self, name: str) -> List[Dict[str, str]]:
        """Summary shown to users: address, replica count and route paths."""
        instance = self.instances.get_instance(name)
        address = self.status.get_instance_address(name)
        replicas = instance.spec.replicas if instance.spec.replicas is not None else 0
        paths = [loc.path for loc in instance.spec.locations or []]
        return [
            {"label": "Address", "value": address or "pending"},
            {"label": "Instances", "value": str(replicas)},
            {"label": "Routes", "value": "\n".join(paths)},
        ]

    # --- blocks ---

    def list_blocks(self, instance: str) -> Optional[List[ConfigurationBlock]]:
        return self.blocks.list_blocks(instance)

    def update_block(self, instance: str, block: ConfigurationBlock) -> None:
        self.blocks.update_block(instance, block)

    def delete_block(self, instance: str, name: str) -> None:
        self.blocks.delete_block(instance, name)

    # --- routes ---

    def get_routes(self, instance: str) -> List[Route]:
        return self.routes.get_routes(instance)

    def update_route(self, instance: str, route: Route) -> None:
        self.routes.update_route(instance, route)

    def delete_route(self, instance: str, path: str) -> None:
        self.routes.delete_route(instance, path)

    # --- certificates ---

    def update_certificate(self, instance: str, name: str, certificate: bytes, key: bytes) -> None:
        self.certificates.update_certificate(instance, name, certificate, key)

    # --- extra files ---

    def get_extra_files(self, instance: str) -> List[File]:
        return self.extra_files.get_extra_files(instance)

    def create_extra_files(self, instance: str, *files: File) -> None:
        self.extra_files.create_extra_files(instance, *files)

    def update_extra_files(self, instance: str, *files: File) -> None:
        self.extra_files.update_extra_files(instance, *files)

    def delete_extra_files(self, instance: str, *names: str) -> None:
        self.extra_files.delete_extra_files(instance, *names)

    # --- live state ---

    def get_instance_status(self, instance: str) -> Dict[str, PodStatus]:
        return self.status.get_instance_status(instance)

    def get_instance_address(self, instance: str) -> str:
        return self.status.get_instance_address(instance)

    def purge_cache(self, instance: str, args: PurgeCacheArgs) -> int:
        return self.purger.purge_cache(instance, args)
