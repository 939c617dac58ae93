import re
from typing import Iterator, Tuple

from model import Application

_HOSTNAME_LABEL_RE = re.compile(r'[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?')

# RFC 3986 path: unreserved, sub-delims, ':', '@', '/' and percent-encoded octets
_PATH_RE = re.compile(r"/(?:[A-Za-z0-9\-._~!$&'()*+,;=:@/]|%[0-9A-Fa-f]{2})*")


class InvalidApplication(Exception):
    code = 422
    reason = "Invalid"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def is_valid_hostname(host: str) -> bool:
    if not host or len(host) > 253:
        return False
    # A single trailing dot marks a fully qualified name
    if host.endswith("."):
        host = host[:-1]
    return all(_HOSTNAME_LABEL_RE.fullmatch(label) for label in host.split("."))


def is_valid_path(path: str) -> bool:
    return bool(_PATH_RE.fullmatch(path))


def _paths(app: Application) -> Iterator[Tuple[str, str]]:
    for path in app.spec.url.base_paths():
        yield "spec.url.basePath", path
    for path in app.spec.ingress.basePaths:
        yield "spec.ingress.basePaths", path


def validate_application(app: Application):
    host = app.spec.url.host
    if host and not is_valid_hostname(host):
        raise InvalidApplication(f"spec.url.host: Invalid hostname: {host}")

    for field, path in _paths(app):
        if not is_valid_path(path):
            raise InvalidApplication(f"{field}: Invalid path: {path}")
