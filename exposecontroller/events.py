"""Kubernetes Event recording for exposecontroller."""

from datetime import datetime, timezone

from kubernetes import client
from kubernetes.client.rest import ApiException

from .logging_config import COMPONENT, get_logger
from .models import Resource

logger = get_logger(__name__)

NORMAL = "Normal"
WARNING = "Warning"


class NullEventRecorder:
    """Recorder that only writes events to the log."""

    def __init__(self, component: str = COMPONENT) -> None:
        self.component = component

    def event(self, resource: Resource, event_type: str, reason: str, message: str) -> None:
        """Record an event about ``resource``."""
        log = logger.warning if event_type == WARNING else logger.info
        log("Event", key=resource.key, type=event_type, reason=reason, message=message,
            source=self.component)


class EventRecorder(NullEventRecorder):
    """Recorder that also posts ``core/v1`` Events against the Service.

    Posting is best effort: API failures are logged and never raised.
    """

    def __init__(self, core_api: client.CoreV1Api, component: str = COMPONENT) -> None:
        super().__init__(component)
        self.core_api = core_api

    def event(self, resource: Resource, event_type: str, reason: str, message: str) -> None:
        super().event(resource, event_type, reason, message)
        now = datetime.now(timezone.utc)
        body = client.CoreV1Event(
            metadata=client.V1ObjectMeta(
                generate_name=f"{resource.name}.",
                namespace=resource.namespace,
            ),
            involved_object=client.V1ObjectReference(
                api_version="v1",
                kind="Service",
                namespace=resource.namespace,
                name=resource.name,
                resource_version=resource.resource_version,
            ),
            reason=reason,
            message=message,
            type=event_type,
            source=client.V1EventSource(component=self.component),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        try:
            self.core_api.create_namespaced_event(namespace=resource.namespace, body=body)
        except ApiException as e:
            logger.warning("Could not record event", key=resource.key, reason=reason,
                           status=e.status, error=str(e))
