"""Tests for the Kubernetes-backed object store."""

import base64

import pytest
from unittest.mock import MagicMock, patch
from kubernetes.client import (
    V1ConfigMap,
    V1ContainerStatus,
    CoreV1Event as V1Event,
    CoreV1EventList as V1EventList,
    V1EventSource,
    V1LoadBalancerIngress,
    V1LoadBalancerStatus,
    V1ObjectMeta,
    V1ObjectReference,
    V1Pod,
    V1PodStatus,
    V1Secret,
    V1Service,
    V1ServiceSpec,
    V1ServiceStatus,
)
from kubernetes.client.rest import ApiException

from rpaas.errors import ConflictError, NotFoundError, ResourceNotFoundError
from rpaas.models import ConfigMap, ObjectMeta, RpaasInstance, Secret
from rpaas.store import KubernetesStore, _init_k8s_clients, fetch_instance


@pytest.fixture
def store():
    s = KubernetesStore(api_client=MagicMock(), timeout=5)
    s.core = MagicMock()
    s.custom = MagicMock()
    return s


def container(ready):
    return V1ContainerStatus(name="nginx", image="nginx", image_id="", ready=ready, restart_count=0)


class TestInit:
    """Tests for client initialization."""

    def test_in_cluster(self):
        with patch("rpaas.store.config") as mock_config:
            _init_k8s_clients()
        mock_config.load_incluster_config.assert_called_once()
        mock_config.load_kube_config.assert_not_called()

    def test_falls_back_to_kubeconfig(self):
        with patch("rpaas.store.config.load_incluster_config") as incluster, \
                patch("rpaas.store.config.load_kube_config") as kube:
            from kubernetes.config import ConfigException
            incluster.side_effect = ConfigException("not in cluster")
            _init_k8s_clients("/tmp/kubeconfig")
        kube.assert_called_once_with(config_file="/tmp/kubeconfig")


class TestInstances:
    """Tests for instance access."""

    def test_get_instance(self, store):
        store.custom.get_namespaced_custom_object.return_value = {
            "metadata": {"name": "r1", "namespace": "rpaasv2"},
            "spec": {"planName": "plan1", "host": "app.example.com"},
        }
        instance = store.get_instance("rpaasv2", "r1")

        assert instance.name == "r1"
        assert instance.spec.plan_name == "plan1"
        store.custom.get_namespaced_custom_object.assert_called_once_with(
            "extensions.tsuru.io", "v1alpha1", "rpaasv2", "rpaasinstances", "r1",
            _request_timeout=5,
        )

    def test_get_instance_not_found(self, store):
        store.custom.get_namespaced_custom_object.side_effect = ApiException(status=404)
        with pytest.raises(ResourceNotFoundError) as exc_info:
            store.get_instance("rpaasv2", "r1")
        assert str(exc_info.value) == 'rpaasinstances "r1" not found'

    def test_update_conflict(self, store):
        store.custom.replace_namespaced_custom_object.side_effect = ApiException(status=409)
        instance = RpaasInstance(metadata=ObjectMeta(name="r1", namespace="rpaasv2"))
        with pytest.raises(ConflictError) as exc_info:
            store.update_instance(instance)
        assert "modified concurrently" in str(exc_info.value)

    def test_update_writes_back_what_was_read(self, store):
        stored = {
            "apiVersion": "extensions.tsuru.io/v1alpha1",
            "kind": "RpaasInstance",
            "metadata": {
                "name": "r1",
                "namespace": "rpaasv2",
                "uid": "6c7a1f3e",
                "resourceVersion": "42",
                "finalizers": ["rpaas.extensions.tsuru.io/cleanup"],
            },
            "spec": {"planName": "plan1", "autoscale": {"maxReplicas": 3}},
            "status": {"observedGeneration": 2},
        }
        store.custom.get_namespaced_custom_object.return_value = stored
        instance = store.get_instance("rpaasv2", "r1")
        store.update_instance(instance)

        args = store.custom.replace_namespaced_custom_object.call_args.args
        assert args[5] == stored

    def test_create_sends_manifest(self, store):
        instance = RpaasInstance(metadata=ObjectMeta(name="r1", namespace="rpaasv2"))
        store.create_instance(instance)

        args = store.custom.create_namespaced_custom_object.call_args.args
        assert args[:4] == ("extensions.tsuru.io", "v1alpha1", "rpaasv2", "rpaasinstances")
        assert args[4]["kind"] == "RpaasInstance"
        assert args[4]["metadata"] == {"name": "r1", "namespace": "rpaasv2"}

    def test_other_errors_propagate(self, store):
        store.custom.get_namespaced_custom_object.side_effect = ApiException(status=500)
        with pytest.raises(ApiException):
            store.get_instance("rpaasv2", "r1")

    def test_fetch_instance_message(self, store):
        store.custom.get_namespaced_custom_object.side_effect = ApiException(status=404)
        with pytest.raises(NotFoundError) as exc_info:
            fetch_instance(store, "rpaasv2", "r1")
        assert str(exc_info.value) == 'rpaas instance "r1" not found'


class TestPlans:
    """Tests for plan access."""

    def test_list_plans(self, store):
        store.custom.list_namespaced_custom_object.return_value = {"items": [
            {"metadata": {"name": "plan1"}, "spec": {"default": True}},
            {"metadata": {"name": "plan2"}, "spec": {}},
        ]}
        plans = store.list_plans("rpaasv2")
        assert [(p.name, p.spec.default) for p in plans] == [("plan1", True), ("plan2", False)]


class TestConfigMaps:
    """Tests for ConfigMap access."""

    def test_get_decodes_binary_data(self, store):
        store.core.read_namespaced_config_map.return_value = V1ConfigMap(
            metadata=V1ObjectMeta(name="files", namespace="rpaasv2"),
            data={"a": "text"},
            binary_data={"b": base64.b64encode(b"\x00bytes").decode()},
        )
        cm = store.get_config_map("rpaasv2", "files")
        assert cm.data == {"a": "text"}
        assert cm.binary_data == {"b": b"\x00bytes"}

    def test_create_encodes_binary_data(self, store):
        store.create_config_map(ConfigMap(
            name="files", namespace="rpaasv2", binary_data={"b": b"bytes"}, labels={"x": "y"},
        ))
        body = store.core.create_namespaced_config_map.call_args.kwargs["body"]
        assert body["binaryData"] == {"b": base64.b64encode(b"bytes").decode()}
        assert body["metadata"]["labels"] == {"x": "y"}
        assert "data" not in body

    def test_create_conflict(self, store):
        store.core.create_namespaced_config_map.side_effect = ApiException(status=409)
        with pytest.raises(ConflictError) as exc_info:
            store.create_config_map(ConfigMap(name="files", namespace="rpaasv2"))
        assert str(exc_info.value) == 'configmaps "files" already exists'


class TestSecrets:
    """Tests for Secret access."""

    def test_round_trip_encoding(self, store):
        store.core.read_namespaced_secret.return_value = V1Secret(
            metadata=V1ObjectMeta(name="certs", namespace="rpaasv2"),
            data={"default.crt": base64.b64encode(b"PEM").decode()},
        )
        assert store.get_secret("rpaasv2", "certs").data == {"default.crt": b"PEM"}

        store.update_secret(Secret(name="certs", namespace="rpaasv2", data={"default.key": b"KEY"}))
        body = store.core.replace_namespaced_secret.call_args.kwargs["body"]
        assert body["data"] == {"default.key": base64.b64encode(b"KEY").decode()}


class TestRuntimeObjects:
    """Tests for nginx, pod, service and event access."""

    def test_get_nginx(self, store):
        store.custom.get_namespaced_custom_object.return_value = {
            "metadata": {"name": "r1", "namespace": "rpaasv2"},
            "status": {
                "pods": [{"name": "r1-abc"}, {"name": "r1-def"}],
                "services": [{"name": "r1-service"}],
            },
        }
        nginx = store.get_nginx("rpaasv2", "r1")
        assert nginx.pods == ["r1-abc", "r1-def"]
        assert nginx.services == ["r1-service"]
        assert store.custom.get_namespaced_custom_object.call_args.args[:4] == (
            "nginx.tsuru.io", "v1alpha1", "rpaasv2", "nginxes",
        )

    def test_get_pod(self, store):
        store.core.read_namespaced_pod.return_value = V1Pod(
            metadata=V1ObjectMeta(name="r1-abc", namespace="rpaasv2"),
            status=V1PodStatus(pod_ip="10.0.0.1", container_statuses=[container(True), container(False)]),
        )
        pod = store.get_pod("rpaasv2", "r1-abc")
        assert pod.ip == "10.0.0.1"
        assert pod.containers_ready == [True, False]
        assert not pod.ready

    def test_get_service_load_balancer(self, store):
        store.core.read_namespaced_service.return_value = V1Service(
            metadata=V1ObjectMeta(name="svc", namespace="rpaasv2"),
            spec=V1ServiceSpec(type="LoadBalancer", cluster_ip="10.96.0.1"),
            status=V1ServiceStatus(load_balancer=V1LoadBalancerStatus(
                ingress=[V1LoadBalancerIngress(hostname="lb.example.com")],
            )),
        )
        svc = store.get_service("rpaasv2", "svc")
        assert svc.type == "LoadBalancer"
        assert svc.load_balancer_ingress == ["lb.example.com"]

    def test_list_events(self, store):
        store.core.list_namespaced_event.return_value = V1EventList(items=[
            V1Event(
                metadata=V1ObjectMeta(name="e1", namespace="rpaasv2"),
                involved_object=V1ObjectReference(kind="Pod", name="r1-abc"),
                source=V1EventSource(component="kubelet", host="node-1"),
                message="Started container",
            ),
        ])
        events = store.list_events("rpaasv2", "Pod", "r1-abc")

        assert events[0].message == "Started container"
        assert events[0].host == "node-1"
        assert store.core.list_namespaced_event.call_args.kwargs["field_selector"] == (
            "involvedObject.kind=Pod,involvedObject.name=r1-abc"
        )
