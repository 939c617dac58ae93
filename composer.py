from dataclasses import dataclass, field
from typing import List

from kubernetes import client

import settings
from model import Application


@dataclass
class Composition:
    env: List[client.V1EnvVar] = field(default_factory=list)
    env_from: List[client.V1EnvFromSource] = field(default_factory=list)
    volumes: List[client.V1Volume] = field(default_factory=list)
    volume_mounts: List[client.V1VolumeMount] = field(default_factory=list)
    image_pull_secrets: List[str] = field(default_factory=list)


def onepassword_secret_name(app: Application) -> str:
    return f"{app.name}-op"


def database_secret_name(app: Application) -> str:
    return f"{app.name}-db"


def kafka_secret_name(app: Application) -> str:
    return f"{app.name}-kafka"


def kafka_certificates_secret_name(app: Application) -> str:
    return f"{app.name}-kafka-certificates"


def compose_env(app: Application) -> List[client.V1EnvVar]:
    env = [client.V1EnvVar(name=e.name, value=e.value, value_from=e.valueFrom) for e in app.spec.env]
    user_keys = {e.name for e in app.spec.env}

    defaults = []
    org_id = app.metadata.labels.get(settings.ORG_ID_LABEL)
    if org_id is not None:
        defaults.append((settings.ORG_ID_ENV, org_id))
    defaults.append((settings.TIMEZONE_ENV, settings.TIMEZONE))

    base_paths = app.spec.url.base_paths()
    if base_paths:
        defaults.append((settings.WEBFLUX_BASE_PATH_ENV, base_paths[0]))
        defaults.append((settings.SERVLET_PATH_ENV, base_paths[0]))

    for key, value in defaults:
        if key not in user_keys:
            env.append(client.V1EnvVar(name=key, value=value))
    return env


def compose_env_from(app: Application) -> List[client.V1EnvFromSource]:
    names = []
    if app.spec.onePassword is not None:
        names.append(onepassword_secret_name(app))
    if app.spec.database is not None:
        names.append(database_secret_name(app))
    if app.kafka_enabled():
        names.append(kafka_secret_name(app))
    return [client.V1EnvFromSource(secret_ref=client.V1SecretEnvSource(name=name)) for name in names]


def compose_image_pull_secrets(app: Application) -> List[str]:
    names = list(app.spec.imagePullSecrets)
    names += [name for name in settings.DEFAULT_IMAGE_PULL_SECRETS if name not in names]
    return names


def compose(app: Application) -> Composition:
    composition = Composition(
        env=compose_env(app),
        env_from=compose_env_from(app),
        image_pull_secrets=compose_image_pull_secrets(app),
    )

    if app.kafka_enabled():
        composition.volumes.append(client.V1Volume(
            name=settings.CREDENTIALS_VOLUME,
            secret=client.V1SecretVolumeSource(secret_name=kafka_certificates_secret_name(app)),
        ))
        composition.volume_mounts.append(client.V1VolumeMount(
            name=settings.CREDENTIALS_VOLUME,
            mount_path=settings.CREDENTIALS_MOUNT_PATH,
            read_only=True,
        ))

    return composition
