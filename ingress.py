from typing import List, Optional

import meta
import settings
from model import Application

API_VERSION = "traefik.containo.us/v1alpha1"
KIND = "IngressRoute"


def effective_paths(app: Application) -> List[str]:
    if app.spec.ingress.basePaths:
        return list(app.spec.ingress.basePaths)
    return app.spec.url.base_paths()


def route_match(host: str, paths: List[str]) -> str:
    match = f"Host(`{host}`)"
    if len(paths) == 1:
        match += f" && PathPrefix(`{paths[0]}`)"
    elif paths:
        prefixes = " || ".join(f"PathPrefix(`{path}`)" for path in paths)
        match += f" && ({prefixes})"
    return match


def build_ingress_route(app: Application) -> Optional[dict]:
    host = app.spec.url.host
    if not app.spec.ingress.enabled or not host:
        return None

    spec = {
        "entryPoints": [settings.TRAEFIK_ENTRY_POINT],
        "routes": [{
            "kind": "Rule",
            "match": route_match(host, effective_paths(app)),
            "services": [{
                "name": app.name,
                "namespace": app.namespace,
                "port": settings.CONTAINER_PORT,
            }],
        }],
    }
    return meta.custom_object(app, API_VERSION, KIND, app.name, spec)
