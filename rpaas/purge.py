"""Cache purge fan-out across the ready replicas of an instance."""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Protocol

from .errors import DeadlineExceededError, ResourceNotFoundError, ValidationError
from .models import Pod
from .store import ObjectStore, fetch_instance

logger = logging.getLogger(__name__)


class CacheManager(Protocol):
    def purge_cache(self, host: str, path: str, preserve_path: bool = False) -> None: ...


@dataclass
class PurgeCacheArgs:
    path: str = ""
    preserve_path: bool = False


class CachePurgeCoordinator:
    """Issues one purge per ready replica and counts the ones that succeeded.

    Per-replica failures are logged and left out of the count. Every call is
    joined before returning; the transport bounds each one with its own
    timeout. If any call is still running when `timeout` expires, the purge
    fails with DeadlineExceededError once the stragglers have returned.
    """

    def __init__(
        self,
        store: ObjectStore,
        namespace: str,
        cache_manager: CacheManager,
        timeout: float = 10,
    ):
        self.store = store
        self.namespace = namespace
        self.cache_manager = cache_manager
        self.timeout = timeout

    def ready_pods(self, instance_name: str) -> List[Pod]:
        """Replicas with every container ready and an address assigned."""
        try:
            nginx = self.store.get_nginx(self.namespace, instance_name)
        except ResourceNotFoundError:
            return []

        pods = []
        for pod_name in nginx.pods:
            try:
                pod = self.store.get_pod(self.namespace, pod_name)
            except ResourceNotFoundError:
                logger.warning(f"Replica {pod_name} of instance {instance_name} not found")
                continue
            if pod.ready and pod.ip:
                pods.append(pod)
        return pods

    def purge_cache(self, instance_name: str, args: PurgeCacheArgs) -> int:
        fetch_instance(self.store, self.namespace, instance_name)
        if not args.path:
            raise ValidationError("path is required")

        pods = self.ready_pods(instance_name)
        if not pods:
            return 0

        with ThreadPoolExecutor(max_workers=len(pods)) as executor:
            futures = {
                executor.submit(self.cache_manager.purge_cache, pod.ip, args.path, args.preserve_path): pod
                for pod in pods
            }
            _, late = wait(futures, timeout=self.timeout)
            if late:
                late_names = ", ".join(sorted(futures[f].name for f in late))
                logger.warning(f"Purge of {args.path} still running on {late_names} after {self.timeout}s")

        if late:
            raise DeadlineExceededError(
                f'purge of "{args.path}" on instance "{instance_name}" '
                f"did not finish within {self.timeout:g}s"
            )

        count = 0
        for future, pod in futures.items():
            err = future.exception()
            if err is not None:
                logger.warning(f"Failed to purge {args.path} on replica {pod.name} ({pod.ip}): {err}")
                continue
            count += 1

        logger.info(f"Purged {args.path} on {count}/{len(pods)} replicas of instance {instance_name}")
        return count
