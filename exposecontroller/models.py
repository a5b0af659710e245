"""Data models for exposecontroller."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServicePort(BaseModel):
    """A port exposed by a Service."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(None, description="Port name")
    port: int = Field(..., description="Service port number")
    target_port: Optional[Union[int, str]] = Field(None, description="Port on the pods the Service forwards to")
    protocol: str = Field("TCP", description="Port protocol")


class Resource(BaseModel):
    """A namespaced, labeled cluster resource (a Service)."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., description="Kubernetes namespace")
    name: str = Field(..., description="Resource name")
    labels: Dict[str, str] = Field(default_factory=dict, description="Resource labels")
    annotations: Dict[str, str] = Field(default_factory=dict, description="Resource annotations")
    ports: List[ServicePort] = Field(default_factory=list, description="Service ports")
    resource_version: Optional[str] = Field(None, description="Last observed resourceVersion")

    @property
    def key(self) -> str:
        """The cache key of this resource, ``namespace/name``."""
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_service(cls, service: Any) -> "Resource":
        """Build a Resource from a ``kubernetes.client.V1Service``."""
        metadata = service.metadata
        spec = getattr(service, "spec", None)
        ports = []
        for port in (getattr(spec, "ports", None) or []):
            ports.append(ServicePort(
                name=port.name,
                port=port.port,
                target_port=port.target_port,
                protocol=port.protocol or "TCP",
            ))
        return cls(
            namespace=metadata.namespace or "",
            name=metadata.name,
            labels=metadata.labels or {},
            annotations=metadata.annotations or {},
            ports=ports,
            resource_version=metadata.resource_version,
        )


class ExposeMarker(BaseModel):
    """The label key/value pair that requests external exposure."""

    model_config = ConfigDict(frozen=True)

    key: str = Field("expose", description="Label key")
    value: str = Field("true", description="Expected label value")

    def matches(self, resource: Resource) -> bool:
        """Return True if the resource's labels carry this exact pair."""
        return resource.labels.get(self.key) == self.value


class TombstoneKey(BaseModel):
    """A delete payload that only retained the ``namespace/name`` key."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Last known key of the deleted resource")


class Added(BaseModel):
    """A resource was observed for the first time."""

    model_config = ConfigDict(frozen=True)

    resource: Resource


class Updated(BaseModel):
    """A resource changed (or was redelivered by a resync)."""

    model_config = ConfigDict(frozen=True)

    old: Resource
    new: Resource


class Deleted(BaseModel):
    """A resource was deleted; the payload may be degraded to a key."""

    model_config = ConfigDict(frozen=True)

    obj: Union[Resource, TombstoneKey]


Notification = Union[Added, Updated, Deleted]


class ControllerConfig(BaseModel):
    """Configuration for the expose controller."""

    namespace: str = Field("", description="Namespace to watch (empty for all namespaces)")
    exposer: str = Field("ingress", description="Exposure strategy (ingress, route, loadbalancer, nodeport)")
    domain: Optional[str] = Field(None, description="Domain used to build exposed host names")
    resync_period: float = Field(30.0, description="Full resync interval in seconds")
    watch_timeout: int = Field(300, description="Server-side watch timeout in seconds")
    expose_label: ExposeMarker = Field(default_factory=ExposeMarker, description="Label requesting exposure")
    kubeconfig_path: Optional[str] = Field(None, description="Path to kubeconfig file")
    context: Optional[str] = Field(None, description="Kubernetes context name")
    record_events: bool = Field(True, description="Emit Kubernetes Events on exposure changes")

    @field_validator("resync_period")
    @classmethod
    def _positive_resync(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("resync_period must be greater than zero")
        return value

    @field_validator("watch_timeout")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("watch_timeout must be greater than zero")
        return value

    @field_validator("exposer")
    @classmethod
    def _normalize_exposer(cls, value: str) -> str:
        return value.strip().lower()
