import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from kubernetes.utils import parse_quantity

import kub
import meta
from composer import database_secret_name, kafka_secret_name, onepassword_secret_name
from deployment import build_deployment
from external import build_database_user, build_kafka_user, build_onepassword_item
from ingress import build_ingress_route
from kub import KubernetesClient, ResourceType
from model import Application

DESIRED_HASH_ANNOTATION = "fintlabs.no/desired-hash"
QUANTITY_FIELDS = ("requests", "limits")

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
DELETED = "deleted"
ABSENT = "absent"


@dataclass(frozen=True)
class Dependent:
    component: str
    rtype: ResourceType
    build: Callable[[Application], Optional[Any]]
    name: Callable[[Application], str]


def _app_name(app: Application) -> str:
    return app.name


# Secret requests come before the Deployment that consumes their secrets
DEPENDENTS: List[Dependent] = [
    Dependent("onepassword", kub.ONEPASSWORD_ITEM, build_onepassword_item, onepassword_secret_name),
    Dependent("database", kub.DATABASE_USER, build_database_user, database_secret_name),
    Dependent("kafka", kub.KAFKA_USER, build_kafka_user, kafka_secret_name),
    Dependent("deployment", kub.DEPLOYMENT, build_deployment, _app_name),
    Dependent("ingressroute", kub.INGRESS_ROUTE, build_ingress_route, _app_name),
]


def desired_hash(body: dict) -> str:
    return hashlib.sha256(json.dumps(body, sort_keys=True).encode("utf-8")).hexdigest()


def with_desired_hash(body: dict) -> dict:
    annotations = dict(body["metadata"].get("annotations") or {})
    annotations[DESIRED_HASH_ANNOTATION] = desired_hash(body)
    return {**body, "metadata": {**body["metadata"], "annotations": annotations}}


def owned_by(live: dict, app: Application) -> bool:
    references = (live.get("metadata") or {}).get("ownerReferences") or []
    return any(ref.get("uid") == app.metadata.uid for ref in references)


def quantity_differs(desired: Any, live: Any) -> bool:
    if live is None:
        return True
    try:
        return parse_quantity(desired) != parse_quantity(live)
    except ValueError:
        return str(desired) != str(live)


def differs(desired: Any, live: Any, field: Optional[str] = None) -> bool:
    """True when any field set in ``desired`` is missing or different in ``live``.

    Fields only present in ``live`` are server managed and ignored. Removed
    fields are caught by the desired-hash annotation.
    """
    if isinstance(desired, dict):
        if not isinstance(live, dict):
            return True
        if field in QUANTITY_FIELDS:
            # The API server returns quantities in canonical form (0.5 -> 500m)
            return any(quantity_differs(value, live.get(key)) for key, value in desired.items())
        return any(differs(value, live.get(key), key) for key, value in desired.items())
    if isinstance(desired, list):
        if not isinstance(live, list) or len(desired) != len(live):
            return True
        return any(differs(d, l) for d, l in zip(desired, live))
    return desired != live


class Reconciler:
    def __init__(self, kube: KubernetesClient, dependents: Optional[List[Dependent]] = None):
        self.kube = kube
        self.dependents = DEPENDENTS if dependents is None else dependents

    def desired_state(self, app: Application) -> Dict[str, Optional[dict]]:
        desired = {}
        for dependent in self.dependents:
            obj = dependent.build(app)
            desired[dependent.component] = None if obj is None else meta.serialize(obj)
        return desired

    def reconcile(self, app: Application) -> Dict[str, str]:
        logging.info(f"Reconciling Application {app.key}")
        desired = self.desired_state(app)
        return {
            dependent.component: self._apply(dependent, app, desired[dependent.component])
            for dependent in self.dependents
        }

    def _apply(self, dependent: Dependent, app: Application, body: Optional[dict]) -> str:
        rtype = dependent.rtype
        name = dependent.name(app)
        live = self.kube.get(rtype, app.namespace, name)

        if body is None:
            if live is None or not owned_by(live, app):
                return ABSENT
            self.kube.delete(rtype, app.namespace, name)
            return DELETED

        body = with_desired_hash(body)
        if live is None:
            self.kube.create(rtype, app.namespace, body)
            return CREATED

        if not differs(body, live):
            logging.debug(f"{rtype.kind} {app.namespace}/{name} is up to date.")
            return UNCHANGED

        body["metadata"]["resourceVersion"] = live["metadata"].get("resourceVersion")
        self.kube.replace(rtype, app.namespace, body)
        return UPDATED
