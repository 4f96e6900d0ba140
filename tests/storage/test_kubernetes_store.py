"""Tests for the Kubernetes-backed object store."""

import unittest
from unittest.mock import Mock

from kubernetes import client  # type: ignore
from kubernetes.client.rest import ApiException  # type: ignore
from urllib3.exceptions import MaxRetryError

from elastic_jupyter.exceptions import ConflictError, PlatformIOError
from elastic_jupyter.models.kinds import CONFIG_MAP, DEPLOYMENT, NOTEBOOK, SERVICE
from elastic_jupyter.storage.kubernetes import KubernetesStore

DEPLOYMENT_BODY = {"metadata": {"name": "nb", "namespace": "default"}}


def make_deployment(**metadata) -> client.V1Deployment:
    return client.V1Deployment(
        metadata=client.V1ObjectMeta(**metadata),
        spec=client.V1DeploymentSpec(
            selector=client.V1LabelSelector(match_labels={"notebook": "nb"}),
            template=client.V1PodTemplateSpec(),
        ),
    )


class TestKubernetesStoreConfiguration(unittest.TestCase):
    """Test cases for the client configuration of the store."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        default = client.Configuration.get_default_copy()
        self.addCleanup(client.Configuration.set_default, default)

    def test_clients_use_loaded_configuration(self):
        """Test that a store built after loading the config talks to the cluster."""
        configuration = client.Configuration()
        configuration.host = "https://cluster.example:6443"
        client.Configuration.set_default(configuration)

        store = KubernetesStore()

        self.assertEqual(store.apps_v1.api_client.configuration.host, "https://cluster.example:6443")
        self.assertEqual(store.core_v1.api_client.configuration.host, "https://cluster.example:6443")
        self.assertEqual(store.custom_objects.api_client.configuration.host, "https://cluster.example:6443")


class TestKubernetesStore(unittest.TestCase):
    """Test cases for the Kubernetes store."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        self.store = KubernetesStore()
        self.apps_v1 = self.store.apps_v1 = Mock()
        self.core_v1 = self.store.core_v1 = Mock()
        self.custom_objects = self.store.custom_objects = Mock()

    def test_get_custom_object(self):
        """Test reading a custom resource."""
        self.custom_objects.get_namespaced_custom_object.return_value = {"metadata": {"name": "nb"}}

        body = self.store.get(NOTEBOOK, "default", "nb")

        self.assertEqual(body, {"metadata": {"name": "nb"}})
        self.custom_objects.get_namespaced_custom_object.assert_called_once_with(
            "kubeflow.tkestack.io", "v1alpha1", "default", "jupyternotebooks", "nb"
        )

    def test_get_deployment(self):
        """Test that typed objects come back as camelCase dicts."""
        self.apps_v1.read_namespaced_deployment.return_value = make_deployment(
            name="nb", namespace="default", resource_version="7"
        )

        body = self.store.get(DEPLOYMENT, "default", "nb")

        self.assertEqual(body["metadata"], {"name": "nb", "namespace": "default", "resourceVersion": "7"})
        self.assertEqual(body["spec"]["selector"], {"matchLabels": {"notebook": "nb"}})
        self.apps_v1.read_namespaced_deployment.assert_called_once_with(name="nb", namespace="default")

    def test_get_not_found(self):
        """Test that a missing object reads as None."""
        self.core_v1.read_namespaced_config_map.side_effect = ApiException(status=404)

        self.assertIsNone(self.store.get(CONFIG_MAP, "default", "cm"))

    def test_get_server_error(self):
        """Test that other API errors are platform errors."""
        self.core_v1.read_namespaced_service.side_effect = ApiException(status=500, reason="Internal Server Error")

        with self.assertRaises(PlatformIOError):
            self.store.get(SERVICE, "default", "gw")

    def test_transport_error(self):
        """Test that connection failures are platform errors."""
        self.apps_v1.read_namespaced_deployment.side_effect = MaxRetryError(Mock(), "/apis")

        with self.assertRaises(PlatformIOError):
            self.store.get(DEPLOYMENT, "default", "nb")

    def test_create_deployment(self):
        """Test creating a typed object."""
        self.apps_v1.create_namespaced_deployment.return_value = make_deployment(name="nb", namespace="default")

        self.store.create(DEPLOYMENT, DEPLOYMENT_BODY)

        self.apps_v1.create_namespaced_deployment.assert_called_once_with(namespace="default", body=DEPLOYMENT_BODY)

    def test_replace_conflict(self):
        """Test that a version mismatch is a conflict."""
        self.apps_v1.replace_namespaced_deployment.side_effect = ApiException(status=409, reason="Conflict")

        with self.assertRaises(ConflictError):
            self.store.replace(DEPLOYMENT, DEPLOYMENT_BODY)

    def test_create_bad_request(self):
        """Test that a rejected create is a platform error."""
        self.core_v1.create_namespaced_service.side_effect = ApiException(status=400, reason="Bad Request")

        with self.assertRaises(PlatformIOError):
            self.store.create(SERVICE, DEPLOYMENT_BODY)

    def test_patch_status(self):
        """Test that status goes to the status subresource."""
        self.store.patch_status(NOTEBOOK, "default", "nb", {"phase": "Ready"})

        self.custom_objects.patch_namespaced_custom_object_status.assert_called_once_with(
            "kubeflow.tkestack.io", "v1alpha1", "default", "jupyternotebooks", "nb", {"status": {"phase": "Ready"}}
        )

    def test_list_all_namespaces(self):
        """Test listing custom resources across namespaces."""
        self.custom_objects.list_cluster_custom_object.return_value = {"items": [{"metadata": {"name": "nb"}}]}

        bodies = self.store.list(NOTEBOOK)

        self.assertEqual(bodies, [{"metadata": {"name": "nb"}}])

    def test_list_namespaced_config_maps(self):
        """Test listing typed objects in one namespace."""
        self.core_v1.list_namespaced_config_map.return_value = client.V1ConfigMapList(
            items=[client.V1ConfigMap(metadata=client.V1ObjectMeta(name="cm"), data={"k": "v"})]
        )

        bodies = self.store.list(CONFIG_MAP, "default")

        self.assertEqual(bodies, [{"metadata": {"name": "cm"}, "data": {"k": "v"}}])


if __name__ == "__main__":
    unittest.main()
