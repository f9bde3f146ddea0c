"""Live status of the replicas backing an instance."""

import logging
from dataclasses import dataclass
from typing import Dict, List

from .errors import ResourceNotFoundError
from .models import Event
from .store import ObjectStore, fetch_instance

logger = logging.getLogger(__name__)


@dataclass
class PodStatus:
    """Health and address of one replica."""

    running: bool
    status: str = ""
    address: str = ""


def format_events(events: List[Event]) -> str:
    """Join event messages as `msg [component, host]`, one per line, without repeats.

    Events with neither component nor host are shown as the bare message.
    """
    lines: List[str] = []
    for event in events:
        source = ", ".join(part for part in (event.component, event.host) if part)
        line = f"{event.message} [{source}]" if source else event.message
        if line not in lines:
            lines.append(line)
    return "\n".join(lines)


class StatusAggregator:
    """Reports on replicas through a store that reads live cluster state."""

    def __init__(self, store: ObjectStore, namespace: str):
        self.store = store
        self.namespace = namespace

    def get_instance_status(self, instance_name: str) -> Dict[str, PodStatus]:
        """Map each replica name to its status.

        A replica listed by the workload but missing from the cluster is
        reported as not running, with the lookup failure as its status.

        Raises:
            NotFoundError: If the instance or its workload does not exist
        """
        fetch_instance(self.store, self.namespace, instance_name)
        nginx = self.store.get_nginx(self.namespace, instance_name)

        statuses: Dict[str, PodStatus] = {}
        for pod_name in nginx.pods:
            try:
                pod = self.store.get_pod(self.namespace, pod_name)
            except ResourceNotFoundError as e:
                logger.warning(f"Replica {pod_name} of instance {instance_name} not found")
                statuses[pod_name] = PodStatus(running=False, status=str(e))
                continue

            events = self.store.list_events(self.namespace, "Pod", pod_name)
            statuses[pod_name] = PodStatus(
                running=pod.ready,
                status=format_events(events),
                address=pod.ip,
            )
        return statuses

    def get_instance_address(self, instance_name: str) -> str:
        """Return the external address of the instance, or "" if not assigned yet."""
        fetch_instance(self.store, self.namespace, instance_name)

        try:
            nginx = self.store.get_nginx(self.namespace, instance_name)
        except ResourceNotFoundError:
            return ""
        if not nginx.services:
            return ""

        try:
            service = self.store.get_service(self.namespace, nginx.services[0])
        except ResourceNotFoundError:
            return ""

        if service.type == "LoadBalancer":
            return service.load_balancer_ingress[0] if service.load_balancer_ingress else ""
        return service.cluster_ip
