import os

GROUP = "fintlabs.no"
VERSION = "v1alpha1"
KIND = "Application"
PLURAL = "applications"

OPERATOR_NAME = "flaiserator"

# Labels and annotations
APP_LABEL = "app"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
ORG_ID_LABEL = "fintlabs.no/org-id"
TEAM_LABEL = "fintlabs.no/team"
DEFAULT_CONTAINER_ANNOTATION = "kubectl.kubernetes.io/default-container"
PROMETHEUS_SCRAPE_ANNOTATION = "prometheus.io/scrape"
PROMETHEUS_PORT_ANNOTATION = "prometheus.io/port"
PROMETHEUS_PATH_ANNOTATION = "prometheus.io/path"

# Container defaults
CONTAINER_PORT = 8080
CONTAINER_PORT_NAME = "http"
ORG_ID_ENV = "fint.org-id"
TIMEZONE_ENV = "TZ"
TIMEZONE = "Europe/Oslo"
WEBFLUX_BASE_PATH_ENV = "spring.webflux.base-path"
SERVLET_PATH_ENV = "spring.mvc.servlet.path"
CREDENTIALS_VOLUME = "credentials"
CREDENTIALS_MOUNT_PATH = "/credentials"

TRAEFIK_ENTRY_POINT = "web"

DEFAULT_IMAGE_PULL_SECRETS = [
    name.strip()
    for name in os.getenv("DEFAULT_IMAGE_PULL_SECRETS", "reg-key-1,reg-key-2").split(",")
    if name.strip()
]

WATCH_NAMESPACE = os.getenv("WATCH_NAMESPACE", "")
WORKERS = int(os.getenv("WORKERS", "4"))
RESYNC_SECONDS = int(os.getenv("RESYNC_SECONDS", "300"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
OPERATOR_ENABLED = os.getenv("OPERATOR_ENABLED", "true").lower() == "true"

HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
HTTP_PORT = int(os.getenv("HTTP_PORT", "8080"))
# The API server only calls admission webhooks over TLS
TLS_CERT_FILE = os.getenv("TLS_CERT_FILE")
TLS_KEY_FILE = os.getenv("TLS_KEY_FILE")
