import logging
from dataclasses import dataclass
from typing import Optional

from kubernetes import client, config
from kubernetes.client import ApiException
from kubernetes.config import ConfigException

import meta


@dataclass(frozen=True)
class ResourceType:
    kind: str
    group: str
    version: str
    plural: str


DEPLOYMENT = ResourceType("Deployment", "apps", "v1", "deployments")
INGRESS_ROUTE = ResourceType("IngressRoute", "traefik.containo.us", "v1alpha1", "ingressroutes")
ONEPASSWORD_ITEM = ResourceType("OnePasswordItem", "onepassword.com", "v1", "onepassworditems")
DATABASE_USER = ResourceType("PGUser", "fintlabs.no", "v1alpha1", "pgusers")
KAFKA_USER = ResourceType("KafkaUserAndAcl", "fintlabs.no", "v1alpha1", "kafkauserandacls")


def load_config():
    try:
        config.load_incluster_config()
    except ConfigException:
        config.load_kube_config()


class KubernetesClient:
    def __init__(self, api_client: Optional[client.ApiClient] = None):
        self.apps_api = client.AppsV1Api(api_client)
        self.custom_api = client.CustomObjectsApi(api_client)

    def get(self, rtype: ResourceType, namespace: str, name: str) -> Optional[dict]:
        try:
            if rtype == DEPLOYMENT:
                return meta.serialize(self.apps_api.read_namespaced_deployment(name=name, namespace=namespace))
            return self.custom_api.get_namespaced_custom_object(
                rtype.group, rtype.version, namespace, rtype.plural, name
            )
        except ApiException as e:
            if e.status == 404:
                return None
            logging.error(f"Exception when reading {rtype.kind} {namespace}/{name}: {e}")
            raise e

    def create(self, rtype: ResourceType, namespace: str, body: dict):
        name = body["metadata"]["name"]
        try:
            if rtype == DEPLOYMENT:
                self.apps_api.create_namespaced_deployment(namespace=namespace, body=body)
            else:
                self.custom_api.create_namespaced_custom_object(
                    rtype.group, rtype.version, namespace, rtype.plural, body
                )
            logging.info(f"{rtype.kind} {namespace}/{name} created successfully.")
        except ApiException as e:
            logging.error(f"Exception when creating {rtype.kind} {namespace}/{name}: {e}")
            raise e

    def replace(self, rtype: ResourceType, namespace: str, body: dict):
        name = body["metadata"]["name"]
        try:
            if rtype == DEPLOYMENT:
                self.apps_api.replace_namespaced_deployment(name=name, namespace=namespace, body=body)
            else:
                self.custom_api.replace_namespaced_custom_object(
                    rtype.group, rtype.version, namespace, rtype.plural, name, body
                )
            logging.info(f"{rtype.kind} {namespace}/{name} updated successfully.")
        except ApiException as e:
            logging.error(f"Exception when updating {rtype.kind} {namespace}/{name}: {e}")
            raise e

    def delete(self, rtype: ResourceType, namespace: str, name: str):
        try:
            if rtype == DEPLOYMENT:
                self.apps_api.delete_namespaced_deployment(name=name, namespace=namespace)
            else:
                self.custom_api.delete_namespaced_custom_object(
                    rtype.group, rtype.version, namespace, rtype.plural, name
                )
            logging.info(f"{rtype.kind} {namespace}/{name} deleted successfully.")
        except ApiException as e:
            if e.status == 404:
                return
            logging.error(f"Exception when deleting {rtype.kind} {namespace}/{name}: {e}")
            raise e
