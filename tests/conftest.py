import copy

import pytest

from model import Application


def create_test_application(metadata: dict = None, **spec) -> Application:
    obj = {
        "apiVersion": "fintlabs.no/v1alpha1",
        "kind": "Application",
        "metadata": {
            "name": "test",
            "namespace": "test-ns",
            "uid": "7c2a3f4e-0000-4000-8000-000000000001",
            "labels": {
                "fintlabs.no/org-id": "test.org",
                "fintlabs.no/team": "test",
            },
        },
        "spec": {"image": "test-image"},
    }
    obj["metadata"].update(metadata or {})
    obj["spec"].update(spec)
    return Application.model_validate(obj)


@pytest.fixture
def make_app():
    return create_test_application


class FakeKubernetesClient:
    """In-memory stand-in for kub.KubernetesClient keyed by (kind, namespace, name)."""

    def __init__(self):
        self.objects = {}
        self.calls = []
        self._version = 0

    def get(self, rtype, namespace, name):
        obj = self.objects.get((rtype.kind, namespace, name))
        return copy.deepcopy(obj)

    def _store(self, rtype, namespace, body):
        self._version += 1
        obj = copy.deepcopy(body)
        obj["metadata"]["resourceVersion"] = str(self._version)
        self.objects[(rtype.kind, namespace, obj["metadata"]["name"])] = obj

    def create(self, rtype, namespace, body):
        self.calls.append(("create", rtype.kind, body["metadata"]["name"]))
        self._store(rtype, namespace, body)

    def replace(self, rtype, namespace, body):
        self.calls.append(("replace", rtype.kind, body["metadata"]["name"]))
        self._store(rtype, namespace, body)

    def delete(self, rtype, namespace, name):
        self.calls.append(("delete", rtype.kind, name))
        self.objects.pop((rtype.kind, namespace, name), None)


@pytest.fixture
def fake_kube():
    return FakeKubernetesClient()
