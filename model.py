from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, field_validator


class Metadata(BaseModel):
    name: str
    namespace: str = "default"
    uid: Optional[str] = None
    labels: Dict[str, str] = {}
    annotations: Dict[str, str] = {}


class EnvVar(BaseModel):
    name: str
    value: Optional[str] = None
    valueFrom: Optional[Dict[str, Any]] = None


class Resources(BaseModel):
    requests: Dict[str, str] = {}
    limits: Dict[str, str] = {}

    @field_validator("requests", "limits", mode="before")
    @classmethod
    def quantities_as_strings(cls, value):
        # The CRD schema allows int-or-string quantities
        if isinstance(value, dict):
            return {k: v if isinstance(v, str) else str(v) for k, v in value.items()}
        return value


class RollingUpdate(BaseModel):
    maxSurge: Optional[Union[int, str]] = None
    maxUnavailable: Optional[Union[int, str]] = None


class Strategy(BaseModel):
    type: Literal["Recreate", "RollingUpdate"] = "RollingUpdate"
    rollingUpdate: Optional[RollingUpdate] = None


class Url(BaseModel):
    host: Optional[str] = None
    basePath: Optional[Union[str, List[str]]] = None

    def base_paths(self) -> List[str]:
        if not self.basePath:
            return []
        if isinstance(self.basePath, str):
            return [self.basePath]
        return list(self.basePath)


class Ingress(BaseModel):
    enabled: bool = False
    basePaths: List[str] = []


class Prometheus(BaseModel):
    enabled: bool = False
    port: str = "8080"
    path: str = "/actuator/prometheus"


class OnePassword(BaseModel):
    itemPath: str


class Database(BaseModel):
    database: str


class Acl(BaseModel):
    topic: str
    permission: str


class Kafka(BaseModel):
    acls: List[Acl] = []


class ApplicationSpec(BaseModel):
    image: str
    replicas: int = 1
    strategy: Optional[Strategy] = None
    env: List[EnvVar] = []
    resources: Optional[Resources] = None
    imagePullSecrets: List[str] = []
    url: Url = Url()
    ingress: Ingress = Ingress()
    prometheus: Prometheus = Prometheus()
    onePassword: Optional[OnePassword] = None
    database: Optional[Database] = None
    kafka: Optional[Kafka] = None


class Application(BaseModel):
    apiVersion: str = "fintlabs.no/v1alpha1"
    kind: str = "Application"
    metadata: Metadata
    spec: ApplicationSpec

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def key(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    def kafka_enabled(self) -> bool:
        return self.spec.kafka is not None and len(self.spec.kafka.acls) > 0
