from typing import Optional

from kubernetes import client

import meta
import settings
from composer import compose
from model import Application


def image_pull_policy(image: str) -> Optional[str]:
    """Always pull untagged and ``latest`` images, leave the rest to the platform default."""
    if "@" in image:
        return None
    # A ':' before the last '/' belongs to a registry port, not a tag
    last = image.rsplit("/", 1)[-1]
    if ":" not in last:
        return "Always"
    tag = last.rsplit(":", 1)[1]
    return "Always" if tag == "latest" else None


def pod_annotations(app: Application) -> dict:
    annotations = {settings.DEFAULT_CONTAINER_ANNOTATION: app.name}
    prometheus = app.spec.prometheus
    if prometheus.enabled:
        annotations.update({
            settings.PROMETHEUS_SCRAPE_ANNOTATION: "true",
            settings.PROMETHEUS_PORT_ANNOTATION: prometheus.port,
            settings.PROMETHEUS_PATH_ANNOTATION: prometheus.path,
        })
    return annotations


def deployment_strategy(app: Application) -> Optional[client.V1DeploymentStrategy]:
    strategy = app.spec.strategy
    if strategy is None:
        return None
    rolling_update = None
    if strategy.rollingUpdate is not None:
        rolling_update = client.V1RollingUpdateDeployment(
            max_surge=strategy.rollingUpdate.maxSurge,
            max_unavailable=strategy.rollingUpdate.maxUnavailable,
        )
    return client.V1DeploymentStrategy(type=strategy.type, rolling_update=rolling_update)


def build_deployment(app: Application) -> client.V1Deployment:
    composition = compose(app)

    resources = None
    if app.spec.resources is not None:
        resources = client.V1ResourceRequirements(
            requests=app.spec.resources.requests or None,
            limits=app.spec.resources.limits or None,
        )

    container = client.V1Container(
        name=app.name,
        image=app.spec.image,
        image_pull_policy=image_pull_policy(app.spec.image),
        ports=[client.V1ContainerPort(name=settings.CONTAINER_PORT_NAME, container_port=settings.CONTAINER_PORT)],
        resources=resources,
        env=composition.env or None,
        env_from=composition.env_from or None,
        volume_mounts=composition.volume_mounts or None,
    )

    template = client.V1PodTemplateSpec(
        metadata=client.V1ObjectMeta(
            labels={settings.APP_LABEL: app.name},
            annotations=pod_annotations(app),
        ),
        spec=client.V1PodSpec(
            containers=[container],
            image_pull_secrets=[client.V1LocalObjectReference(name=n) for n in composition.image_pull_secrets] or None,
            volumes=composition.volumes or None,
        ),
    )

    spec = client.V1DeploymentSpec(
        replicas=app.spec.replicas,
        selector=client.V1LabelSelector(match_labels={settings.APP_LABEL: app.name}),
        strategy=deployment_strategy(app),
        template=template,
    )

    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=meta.object_meta(app),
        spec=spec,
    )
