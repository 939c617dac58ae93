from typing import Dict, Optional

from kubernetes import client

import settings
from model import Application

_api_client = client.ApiClient()


def serialize(obj):
    return _api_client.sanitize_for_serialization(obj)


def labels(app: Application) -> Dict[str, str]:
    merged = dict(app.metadata.labels)
    merged.update({
        settings.APP_LABEL: app.name,
        settings.MANAGED_BY_LABEL: settings.OPERATOR_NAME,
    })
    return merged


def owner_reference(app: Application) -> client.V1OwnerReference:
    return client.V1OwnerReference(
        api_version=app.apiVersion,
        kind=app.kind,
        name=app.name,
        uid=app.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )


def object_meta(app: Application, name: Optional[str] = None) -> client.V1ObjectMeta:
    return client.V1ObjectMeta(
        name=name or app.name,
        namespace=app.namespace,
        labels=labels(app),
        owner_references=[owner_reference(app)],
    )


def custom_object(app: Application, api_version: str, kind: str, name: str, spec: dict) -> dict:
    """Dependents served by CustomObjectsApi are plain dicts in wire format."""
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": serialize(object_meta(app, name)),
        "spec": spec,
    }
