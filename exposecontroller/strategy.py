"""Exposure strategies that realize or tear down external access to a Service.

Every strategy is idempotent: ``add`` may be called repeatedly for the same
Service, and ``remove`` must succeed for Services that were never exposed or
no longer exist.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from .exceptions import ConfigurationError, ExposeError
from .logging_config import get_logger, log_k8s_operation
from .models import Resource

logger = get_logger(__name__)

EXPOSE_URL_ANNOTATION = "fabric8.io/exposeUrl"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "exposecontroller"

ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"
ROUTE_PLURAL = "routes"


class ExposeStrategy(ABC):
    """Capability that exposes Services outside the cluster."""

    name = ""

    @abstractmethod
    def add(self, resource: Resource) -> None:
        """Expose ``resource``. Raises :class:`ExposeError` on failure."""

    @abstractmethod
    def remove(self, resource: Resource) -> None:
        """Stop exposing ``resource``. Raises :class:`ExposeError` on failure."""


def _call(action: str, resource: Resource, func: Callable[..., Any], *args: Any,
          ignore_not_found: bool = False, **kwargs: Any) -> Any:
    """Run a Kubernetes API call, translating errors into ExposeError."""
    try:
        return func(*args, **kwargs)
    except ApiException as e:
        if ignore_not_found and e.status == 404:
            logger.debug("Object already gone", action=action, key=resource.key)
            return None
        raise ExposeError(action, resource.key, f"{e.status} {e.reason}") from e


class _ServiceAnnotator:
    """Maintains the expose URL annotation on the exposed Service."""

    def __init__(self, core_api: client.CoreV1Api) -> None:
        self.core_api = core_api

    def set_url(self, resource: Resource, url: str) -> None:
        if resource.annotations.get(EXPOSE_URL_ANNOTATION) == url:
            return
        log_k8s_operation(logger, "annotate_service", resource.key, url=url)
        _call("add", resource, self.core_api.patch_namespaced_service,
              resource.name, resource.namespace,
              {"metadata": {"annotations": {EXPOSE_URL_ANNOTATION: url}}})

    def clear_url(self, resource: Resource) -> None:
        if EXPOSE_URL_ANNOTATION not in resource.annotations:
            return
        log_k8s_operation(logger, "unannotate_service", resource.key)
        _call("remove", resource, self.core_api.patch_namespaced_service,
              resource.name, resource.namespace,
              {"metadata": {"annotations": {EXPOSE_URL_ANNOTATION: None}}},
              ignore_not_found=True)


def _is_managed(labels: Optional[Dict[str, str]]) -> bool:
    """Return True if the object was created by this controller."""
    return (labels or {}).get(MANAGED_BY_LABEL) == MANAGED_BY


def exposed_host(resource: Resource, domain: str) -> str:
    """Host name under which ``resource`` is exposed."""
    return f"{resource.name}.{resource.namespace}.{domain}"


class IngressStrategy(ExposeStrategy):
    """Exposes a Service through a ``networking.k8s.io/v1`` Ingress of the same name."""

    name = "ingress"

    def __init__(self, domain: str, api_client: client.ApiClient) -> None:
        self.domain = domain
        self.networking_v1 = client.NetworkingV1Api(api_client)
        self.annotator = _ServiceAnnotator(client.CoreV1Api(api_client))

    def _ingress(self, resource: Resource) -> client.V1Ingress:
        host = exposed_host(resource, self.domain)
        backend = client.V1IngressBackend(
            service=client.V1IngressServiceBackend(
                name=resource.name,
                port=client.V1ServiceBackendPort(number=resource.ports[0].port),
            )
        )
        return client.V1Ingress(
            api_version="networking.k8s.io/v1",
            kind="Ingress",
            metadata=client.V1ObjectMeta(
                name=resource.name,
                namespace=resource.namespace,
                labels={MANAGED_BY_LABEL: MANAGED_BY},
            ),
            spec=client.V1IngressSpec(
                rules=[
                    client.V1IngressRule(
                        host=host,
                        http=client.V1HTTPIngressRuleValue(
                            paths=[client.V1HTTPIngressPath(path="/", path_type="Prefix", backend=backend)]
                        ),
                    )
                ]
            ),
        )

    def add(self, resource: Resource) -> None:
        if not resource.ports:
            raise ExposeError("add", resource.key, "service has no ports")
        body = self._ingress(resource)
        log_k8s_operation(logger, "apply_ingress", resource.key, host=body.spec.rules[0].host)
        try:
            self.networking_v1.create_namespaced_ingress(resource.namespace, body)
        except ApiException as e:
            if e.status != 409:
                raise ExposeError("add", resource.key, f"{e.status} {e.reason}") from e
            existing = _call("add", resource, self.networking_v1.read_namespaced_ingress,
                             resource.name, resource.namespace)
            if not _is_managed(existing.metadata.labels):
                raise ExposeError("add", resource.key, "ingress exists and is not managed by exposecontroller")
            _call("add", resource, self.networking_v1.patch_namespaced_ingress,
                  resource.name, resource.namespace, body)
        self.annotator.set_url(resource, f"http://{exposed_host(resource, self.domain)}")

    def remove(self, resource: Resource) -> None:
        existing = _call("remove", resource, self.networking_v1.read_namespaced_ingress,
                         resource.name, resource.namespace, ignore_not_found=True)
        if existing is not None:
            if _is_managed(existing.metadata.labels):
                log_k8s_operation(logger, "delete_ingress", resource.key)
                _call("remove", resource, self.networking_v1.delete_namespaced_ingress,
                      resource.name, resource.namespace, ignore_not_found=True)
            else:
                logger.info("Leaving unmanaged ingress in place", key=resource.key)
        self.annotator.clear_url(resource)


class RouteStrategy(ExposeStrategy):
    """Exposes a Service through an OpenShift Route of the same name."""

    name = "route"

    def __init__(self, domain: str, api_client: client.ApiClient) -> None:
        self.domain = domain
        self.custom_objects = client.CustomObjectsApi(api_client)
        self.annotator = _ServiceAnnotator(client.CoreV1Api(api_client))

    def _route(self, resource: Resource) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "host": exposed_host(resource, self.domain),
            "to": {"kind": "Service", "name": resource.name},
        }
        if resource.ports:
            port = resource.ports[0]
            spec["port"] = {"targetPort": port.name or port.target_port or port.port}
        return {
            "apiVersion": f"{ROUTE_GROUP}/{ROUTE_VERSION}",
            "kind": "Route",
            "metadata": {
                "name": resource.name,
                "namespace": resource.namespace,
                "labels": {MANAGED_BY_LABEL: MANAGED_BY},
            },
            "spec": spec,
        }

    def add(self, resource: Resource) -> None:
        body = self._route(resource)
        log_k8s_operation(logger, "apply_route", resource.key, host=body["spec"]["host"])
        try:
            self.custom_objects.create_namespaced_custom_object(
                ROUTE_GROUP, ROUTE_VERSION, resource.namespace, ROUTE_PLURAL, body
            )
        except ApiException as e:
            if e.status != 409:
                raise ExposeError("add", resource.key, f"{e.status} {e.reason}") from e
            existing = _call("add", resource, self.custom_objects.get_namespaced_custom_object,
                             ROUTE_GROUP, ROUTE_VERSION, resource.namespace, ROUTE_PLURAL, resource.name)
            if not _is_managed(existing.get("metadata", {}).get("labels")):
                raise ExposeError("add", resource.key, "route exists and is not managed by exposecontroller")
            _call("add", resource, self.custom_objects.patch_namespaced_custom_object,
                  ROUTE_GROUP, ROUTE_VERSION, resource.namespace, ROUTE_PLURAL, resource.name, body)
        self.annotator.set_url(resource, f"http://{exposed_host(resource, self.domain)}")

    def remove(self, resource: Resource) -> None:
        existing = _call("remove", resource, self.custom_objects.get_namespaced_custom_object,
                         ROUTE_GROUP, ROUTE_VERSION, resource.namespace, ROUTE_PLURAL, resource.name,
                         ignore_not_found=True)
        if existing is not None:
            if _is_managed(existing.get("metadata", {}).get("labels")):
                log_k8s_operation(logger, "delete_route", resource.key)
                _call("remove", resource, self.custom_objects.delete_namespaced_custom_object,
                      ROUTE_GROUP, ROUTE_VERSION, resource.namespace, ROUTE_PLURAL, resource.name,
                      ignore_not_found=True)
            else:
                logger.info("Leaving unmanaged route in place", key=resource.key)
        self.annotator.clear_url(resource)


class ServiceTypeStrategy(ExposeStrategy):
    """Exposes a Service by switching its ``spec.type``."""

    service_type = ""

    def __init__(self, api_client: client.ApiClient) -> None:
        self.core_v1 = client.CoreV1Api(api_client)

    def _patch_type(self, action: str, resource: Resource, service_type: str) -> None:
        log_k8s_operation(logger, "patch_service_type", resource.key, type=service_type)
        _call(action, resource, self.core_v1.patch_namespaced_service,
              resource.name, resource.namespace, {"spec": {"type": service_type}},
              ignore_not_found=(action == "remove"))

    def add(self, resource: Resource) -> None:
        self._patch_type("add", resource, self.service_type)

    def remove(self, resource: Resource) -> None:
        self._patch_type("remove", resource, "ClusterIP")


class LoadBalancerStrategy(ServiceTypeStrategy):
    """Exposes a Service by turning it into a ``LoadBalancer`` Service."""

    name = "loadbalancer"
    service_type = "LoadBalancer"


class NodePortStrategy(ServiceTypeStrategy):
    """Exposes a Service on every node through a ``NodePort``."""

    name = "nodeport"
    service_type = "NodePort"


def new_strategy(exposer: str, domain: Optional[str], api_client: client.ApiClient) -> ExposeStrategy:
    """Build the exposure strategy named by ``exposer``.

    Raises:
        ConfigurationError: the name is unknown or a required domain is missing
    """
    exposer = (exposer or "").strip().lower()
    if exposer in (IngressStrategy.name, RouteStrategy.name):
        if not domain:
            raise ConfigurationError(f"exposer {exposer!r} requires a domain")
        cls = IngressStrategy if exposer == IngressStrategy.name else RouteStrategy
        strategy: ExposeStrategy = cls(domain, api_client)
    elif exposer == LoadBalancerStrategy.name:
        strategy = LoadBalancerStrategy(api_client)
    elif exposer == NodePortStrategy.name:
        strategy = NodePortStrategy(api_client)
    else:
        raise ConfigurationError(f"unknown exposer {exposer!r}")
    logger.info("Exposure strategy selected", exposer=exposer, domain=domain)
    return strategy
