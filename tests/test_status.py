"""Tests for replica status and instance address."""

import pytest

from rpaas.errors import NotFoundError
from rpaas.models import Event
from rpaas.status import PodStatus, StatusAggregator, format_events

NAMESPACE = "rpaasv2"


@pytest.fixture
def status(store):
    return StatusAggregator(store, NAMESPACE)


class TestFormatEvents:
    """Tests for format_events."""

    def test_empty(self):
        assert format_events([]) == ""

    def test_formats_and_deduplicates(self):
        events = [
            Event(name="a", message="Pulled image", component="kubelet", host="node-1"),
            Event(name="b", message="Pulled image", component="kubelet", host="node-1"),
            Event(name="c", message="Started", component="kubelet"),
        ]
        assert format_events(events) == "Pulled image [kubelet, node-1]\nStarted [kubelet]"

    def test_no_source(self):
        events = [Event(name="a", message="Back-off restarting failed container")]
        assert format_events(events) == "Back-off restarting failed container"


class TestGetInstanceStatus:
    """Tests for StatusAggregator.get_instance_status."""

    def test_instance_not_found(self, status):
        with pytest.raises(NotFoundError) as exc_info:
            status.get_instance_status("missing")
        assert str(exc_info.value) == 'rpaas instance "missing" not found'

    def test_nginx_not_found(self, store, status):
        store.add_instance("my-instance")
        with pytest.raises(NotFoundError):
            status.get_instance_status("my-instance")

    def test_reports_each_pod(self, store, status):
        store.add_instance("my-instance")
        store.add_nginx("my-instance", pods=["pod-1", "pod-2"])
        store.add_pod("pod-1", ip="10.0.0.1")
        store.add_pod("pod-2", ip="10.0.0.2", ready=False)
        store.add_event("pod-2", "Back-off restarting", component="kubelet", host="node-2")

        assert status.get_instance_status("my-instance") == {
            "pod-1": PodStatus(running=True, status="", address="10.0.0.1"),
            "pod-2": PodStatus(
                running=False,
                status="Back-off restarting [kubelet, node-2]",
                address="10.0.0.2",
            ),
        }

    def test_missing_pod(self, store, status):
        """A pod the workload lists but the cluster lacks is reported, not raised."""
        store.add_instance("my-instance")
        store.add_nginx("my-instance", pods=["pod-1"])

        result = status.get_instance_status("my-instance")
        assert result == {"pod-1": PodStatus(running=False, status='pods "pod-1" not found')}


class TestGetInstanceAddress:
    """Tests for StatusAggregator.get_instance_address."""

    def test_load_balancer(self, store, status):
        store.add_instance("my-instance")
        store.add_nginx("my-instance", services=["my-instance-service"])
        store.add_service(
            "my-instance-service", type="LoadBalancer",
            cluster_ip="10.96.0.10", load_balancer_ingress=["203.0.113.7"],
        )
        assert status.get_instance_address("my-instance") == "203.0.113.7"

    def test_load_balancer_pending(self, store, status):
        store.add_instance("my-instance")
        store.add_nginx("my-instance", services=["svc"])
        store.add_service("svc", type="LoadBalancer", cluster_ip="10.96.0.10")
        assert status.get_instance_address("my-instance") == ""

    def test_cluster_ip(self, store, status):
        store.add_instance("my-instance")
        store.add_nginx("my-instance", services=["svc"])
        store.add_service("svc", type="ClusterIP", cluster_ip="10.96.0.10")
        assert status.get_instance_address("my-instance") == "10.96.0.10"

    def test_no_nginx(self, store, status):
        store.add_instance("my-instance")
        assert status.get_instance_address("my-instance") == ""

    def test_service_missing(self, store, status):
        store.add_instance("my-instance")
        store.add_nginx("my-instance", services=["svc"])
        assert status.get_instance_address("my-instance") == ""

    def test_instance_not_found(self, status):
        with pytest.raises(NotFoundError):
            status.get_instance_address("missing")
