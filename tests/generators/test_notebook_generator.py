"""Tests for the notebook workload generator."""

import unittest

from elastic_jupyter.exceptions import ValidationError
from elastic_jupyter.generators.notebook import gateway_url, generate_workload, notebook_labels
from elastic_jupyter.models.resources import JupyterNotebook, ObjectReference

NOTEBOOK_NAME = "jupyternotebook-sample"
NOTEBOOK_NAMESPACE = "default"
DEFAULT_IMAGE = "busysandbox"
DEFAULT_IMAGE_WITH_GATEWAY = "jupyter/base-notebook:python-3.9.7"
GATEWAY_NAME = "gateway"
GATEWAY_NAMESPACE = "default"
GATEWAY_URL = f"http://{GATEWAY_NAME}.{GATEWAY_NAMESPACE}:8888"

POD_SPEC = {"containers": [{"name": "notebook", "image": DEFAULT_IMAGE}]}
GATEWAY_REF = {"kind": "JupyterGateway", "namespace": GATEWAY_NAMESPACE, "name": GATEWAY_NAME}


def make_notebook(spec: dict) -> JupyterNotebook:
    return JupyterNotebook.from_body(
        {"metadata": {"name": NOTEBOOK_NAME, "namespace": NOTEBOOK_NAMESPACE}, "spec": spec}
    )


class TestGenerateWorkload(unittest.TestCase):
    """Test cases for the notebook workload generator."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        self.empty_notebook = make_notebook({})
        self.notebook_with_template = make_notebook(
            {
                "template": {
                    "metadata": {
                        "labels": {"app": "notebook", "custom-label": "yes"},
                        "annotations": {"custom-annotation": "yes"},
                    },
                    "spec": POD_SPEC,
                }
            }
        )
        self.notebook_with_gateway = make_notebook({"gateway": GATEWAY_REF})
        self.notebook_with_auth_password = make_notebook(
            {
                "auth": {"password": "test"},
                "template": {"metadata": {"labels": {"app": "notebook"}}, "spec": POD_SPEC},
            }
        )
        self.complete_notebook = make_notebook({"gateway": GATEWAY_REF, "template": {"spec": POD_SPEC}})

    def test_null_notebook(self):
        """Test that a missing notebook is rejected."""
        with self.assertRaises(ValidationError) as ctx:
            generate_workload(None)
        self.assertEqual(str(ctx.exception), "the notebook is null")

    def test_no_gateway_and_no_template(self):
        """Test that a notebook without template and gateway is rejected."""
        with self.assertRaises(ValidationError) as ctx:
            generate_workload(self.empty_notebook)
        self.assertEqual(str(ctx.exception), "no gateway and template applied")

    def test_template_without_containers(self):
        """Test that a template defining no container is rejected."""
        notebook = make_notebook({"template": {"spec": {"containers": []}}})
        with self.assertRaises(ValidationError):
            generate_workload(notebook)

    def test_template(self):
        """Test that the template seeds image, labels and annotations."""
        workload = generate_workload(self.notebook_with_template)

        self.assertEqual(workload.image, DEFAULT_IMAGE)
        self.assertEqual(workload.args, [])
        self.assertEqual(
            workload.labels,
            {"app": "notebook", "custom-label": "yes", "notebook": NOTEBOOK_NAME},
        )
        self.assertEqual(workload.annotations, {"custom-annotation": "yes"})
        self.assertEqual(workload.name, NOTEBOOK_NAME)
        self.assertEqual(workload.namespace, NOTEBOOK_NAMESPACE)
        self.assertEqual(workload.replicas, 1)

    def test_gateway_only(self):
        """Test that a gateway-only notebook runs the default image with the launch command."""
        workload = generate_workload(self.notebook_with_gateway)

        self.assertEqual(workload.image, DEFAULT_IMAGE_WITH_GATEWAY)
        self.assertEqual(workload.args, ["start-notebook.sh", "--gateway-url", GATEWAY_URL])
        self.assertEqual(workload.container.name, "notebook")

    def test_template_and_gateway(self):
        """Test that the template image wins and no launch command is prepended."""
        workload = generate_workload(self.complete_notebook)

        self.assertEqual(workload.image, DEFAULT_IMAGE)
        self.assertEqual(workload.args, ["--gateway-url", GATEWAY_URL])

    def test_password(self):
        """Test that the password is passed without a gateway argument."""
        workload = generate_workload(self.notebook_with_auth_password)

        self.assertEqual(workload.image, DEFAULT_IMAGE)
        self.assertEqual(workload.args, ["--password", "test"])

    def test_password_after_gateway(self):
        """Test that the password arguments come last."""
        notebook = make_notebook({"gateway": GATEWAY_REF, "auth": {"password": "secret"}})

        workload = generate_workload(notebook)

        self.assertEqual(
            workload.args,
            ["start-notebook.sh", "--gateway-url", GATEWAY_URL, "--password", "secret"],
        )
        self.assertEqual(workload.args[-2:], ["--password", "secret"])

    def test_notebook_label_overrides_template(self):
        """Test that the notebook label always names the notebook."""
        notebook = make_notebook(
            {"template": {"metadata": {"labels": {"notebook": "other"}}, "spec": POD_SPEC}}
        )

        workload = generate_workload(notebook)

        self.assertEqual(workload.labels["notebook"], NOTEBOOK_NAME)
        self.assertEqual(workload.selector, {"notebook": NOTEBOOK_NAME})

    def test_template_container_without_image(self):
        """Test that a template container without image gets the default image."""
        notebook = make_notebook({"template": {"spec": {"containers": [{"name": "notebook"}]}}})

        workload = generate_workload(notebook, image="custom/notebook:1")

        self.assertEqual(workload.image, "custom/notebook:1")

    def test_template_args_are_kept(self):
        """Test that the template arguments precede the generated ones."""
        notebook = make_notebook(
            {
                "gateway": GATEWAY_REF,
                "template": {"spec": {"containers": [{"name": "nb", "image": "x", "args": ["--debug"]}]}},
            }
        )

        workload = generate_workload(notebook)

        self.assertEqual(workload.args, ["--debug", "--gateway-url", GATEWAY_URL])

    def test_only_first_container_is_mutated(self):
        """Test that sidecar containers are left untouched."""
        notebook = make_notebook(
            {
                "gateway": GATEWAY_REF,
                "template": {
                    "spec": {"containers": [{"name": "nb", "image": "x"}, {"name": "sidecar", "image": "y"}]}
                },
            }
        )

        workload = generate_workload(notebook)

        self.assertEqual(workload.pod_spec.containers[1].args, [])
        self.assertEqual(workload.pod_spec.containers[1].image, "y")

    def test_generate_is_deterministic(self):
        """Test that generating twice yields identical workloads."""
        first = generate_workload(self.complete_notebook)
        second = generate_workload(self.complete_notebook)

        self.assertEqual(first, second)
        self.assertEqual(first.to_manifest(), second.to_manifest())

    def test_input_is_not_modified(self):
        """Test that the notebook spec is left as it was."""
        generate_workload(self.complete_notebook)

        self.assertEqual(self.complete_notebook.spec.template.spec.containers[0].args, [])

    def test_gateway_namespace_defaults_to_notebook_namespace(self):
        """Test the gateway URL of a reference without namespace."""
        url = gateway_url(ObjectReference(name="gw"), "team-a")

        self.assertEqual(url, "http://gw.team-a:8888")

    def test_labels(self):
        """Test the labels identifying the notebook pods."""
        self.assertEqual(notebook_labels(self.notebook_with_template)["notebook"], NOTEBOOK_NAME)


class TestWorkloadManifest(unittest.TestCase):
    """Test cases for the deployment rendered from a notebook workload."""

    def test_deployment(self):
        """Test creation of the Kubernetes deployment object."""
        notebook = make_notebook(
            {
                "gateway": GATEWAY_REF,
                "template": {
                    "metadata": {"labels": {"app": "notebook"}, "annotations": {"a": "b"}},
                    "spec": POD_SPEC,
                },
            }
        )

        manifest = generate_workload(notebook).to_manifest()

        self.assertEqual(manifest["apiVersion"], "apps/v1")
        self.assertEqual(manifest["kind"], "Deployment")
        self.assertEqual(manifest["metadata"]["name"], NOTEBOOK_NAME)
        self.assertEqual(manifest["metadata"]["namespace"], NOTEBOOK_NAMESPACE)
        self.assertEqual(manifest["spec"]["replicas"], 1)
        self.assertEqual(manifest["spec"]["selector"]["matchLabels"], {"notebook": NOTEBOOK_NAME})

        template = manifest["spec"]["template"]
        self.assertEqual(template["metadata"]["labels"], {"app": "notebook", "notebook": NOTEBOOK_NAME})
        self.assertEqual(template["metadata"]["annotations"], {"a": "b"})
        container = template["spec"]["containers"][0]
        self.assertEqual(container["image"], DEFAULT_IMAGE)
        self.assertEqual(container["args"], ["--gateway-url", GATEWAY_URL])

    def test_unmodelled_template_fields_are_kept(self):
        """Test that pod and container fields the operator does not read reach the deployment."""
        secret_env = {"name": "TOKEN", "valueFrom": {"secretKeyRef": {"name": "nb-token", "key": "token"}}}
        notebook = make_notebook(
            {
                "template": {
                    "spec": {
                        "securityContext": {"runAsUser": 1000, "fsGroup": 100},
                        "imagePullSecrets": [{"name": "registry"}],
                        "initContainers": [{"name": "init", "image": "busybox", "command": ["true"]}],
                        "containers": [
                            {
                                "name": "notebook",
                                "image": DEFAULT_IMAGE,
                                "workingDir": "/home/jovyan",
                                "envFrom": [{"configMapRef": {"name": "nb-env"}}],
                                "lifecycle": {"preStop": {"exec": {"command": ["jupyter", "lab", "stop"]}}},
                                "env": [{"name": "MODE", "value": "lab"}, secret_env],
                            }
                        ],
                    }
                }
            }
        )

        pod = generate_workload(notebook).to_manifest()["spec"]["template"]["spec"]

        self.assertEqual(pod["securityContext"], {"runAsUser": 1000, "fsGroup": 100})
        self.assertEqual(pod["imagePullSecrets"], [{"name": "registry"}])
        self.assertEqual(pod["initContainers"], [{"name": "init", "image": "busybox", "command": ["true"]}])
        container = pod["containers"][0]
        self.assertEqual(container["workingDir"], "/home/jovyan")
        self.assertEqual(container["envFrom"], [{"configMapRef": {"name": "nb-env"}}])
        self.assertEqual(container["lifecycle"], {"preStop": {"exec": {"command": ["jupyter", "lab", "stop"]}}})
        self.assertEqual(container["env"], [{"name": "MODE", "value": "lab"}, secret_env])


if __name__ == "__main__":
    unittest.main()
