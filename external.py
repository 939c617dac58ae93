"""Requests for secrets materialized by external provisioning controllers.

Each builder returns ``None`` when its field is not configured. The provisioner
behind each kind writes a Secret with the same name, which the Deployment
consumes through ``envFrom``.
"""
from typing import Optional

import meta
from composer import database_secret_name, kafka_secret_name, onepassword_secret_name
from model import Application

ONEPASSWORD_API_VERSION = "onepassword.com/v1"
ONEPASSWORD_KIND = "OnePasswordItem"

FINTLABS_API_VERSION = "fintlabs.no/v1alpha1"
DATABASE_KIND = "PGUser"
KAFKA_KIND = "KafkaUserAndAcl"


def build_onepassword_item(app: Application) -> Optional[dict]:
    if app.spec.onePassword is None:
        return None
    spec = {"itemPath": app.spec.onePassword.itemPath}
    return meta.custom_object(app, ONEPASSWORD_API_VERSION, ONEPASSWORD_KIND, onepassword_secret_name(app), spec)


def build_database_user(app: Application) -> Optional[dict]:
    if app.spec.database is None:
        return None
    spec = {"database": app.spec.database.database}
    return meta.custom_object(app, FINTLABS_API_VERSION, DATABASE_KIND, database_secret_name(app), spec)


def build_kafka_user(app: Application) -> Optional[dict]:
    if not app.kafka_enabled():
        return None
    spec = {"acls": [acl.model_dump() for acl in app.spec.kafka.acls]}
    return meta.custom_object(app, FINTLABS_API_VERSION, KAFKA_KIND, kafka_secret_name(app), spec)
