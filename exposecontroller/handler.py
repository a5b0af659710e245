"""Reconciliation of Service label transitions into exposure changes."""

from typing import Optional, Tuple, Union

from .events import NORMAL, WARNING, NullEventRecorder
from .exceptions import ExposeError, TombstoneKeyError
from .logging_config import get_logger, log_reconcile_event
from .models import Added, Deleted, ExposeMarker, Notification, Resource, TombstoneKey, Updated
from .strategy import ExposeStrategy

logger = get_logger(__name__)


def split_key(key: str) -> Tuple[str, str]:
    """Split a ``namespace/name`` key.

    Raises:
        TombstoneKeyError: the key does not have exactly two non-empty parts
    """
    parts = key.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise TombstoneKeyError(key)
    return parts[0], parts[1]


class ReconcileHandler:
    """Turns change notifications into calls on an exposure strategy.

    At most one strategy call is made per notification. Strategy failures are
    logged and recorded, never raised; resources that still exist are
    repaired by the next resync.
    """

    def __init__(
        self,
        strategy: ExposeStrategy,
        marker: Optional[ExposeMarker] = None,
        recorder: Optional[NullEventRecorder] = None,
    ) -> None:
        self.strategy = strategy
        self.marker = marker or ExposeMarker()
        self.recorder = recorder or NullEventRecorder()

    def handle(self, notification: Notification) -> None:
        """Dispatch a single notification."""
        if isinstance(notification, Added):
            self.on_add(notification.resource)
        elif isinstance(notification, Updated):
            self.on_update(notification.old, notification.new)
        elif isinstance(notification, Deleted):
            self.on_delete(notification.obj)
        else:
            raise TypeError(f"Unsupported notification: {notification!r}")

    def on_add(self, resource: Resource) -> None:
        if self.marker.matches(resource):
            self._add(resource, announce=True)

    def on_update(self, old: Resource, new: Resource) -> None:
        was_exposed = self.marker.matches(old)
        if self.marker.matches(new):
            # exposed state is re-applied on every update
            self._add(new, announce=not was_exposed)
        elif was_exposed:
            self._remove(new, announce=True)

    def on_delete(self, obj: Union[Resource, TombstoneKey]) -> None:
        if isinstance(obj, TombstoneKey):
            try:
                namespace, name = split_key(obj.key)
            except TombstoneKeyError as e:
                logger.error("Dropping delete notification", key=obj.key, error=str(e))
                return
            obj = Resource(namespace=namespace, name=name)
        self._remove(obj, announce=False)

    def _add(self, resource: Resource, announce: bool) -> None:
        try:
            self.strategy.add(resource)
        except ExposeError as e:
            logger.error("Add failed", key=resource.key, exposer=self.strategy.name, error=str(e))
            if announce:
                self.recorder.event(resource, WARNING, "ExposeFailed", str(e))
            return
        log_reconcile_event(logger, "exposed", key=resource.key, exposer=self.strategy.name)
        if announce:
            self.recorder.event(resource, NORMAL, "Exposed",
                                f"Service exposed using {self.strategy.name}")

    def _remove(self, resource: Resource, announce: bool) -> None:
        try:
            self.strategy.remove(resource)
        except ExposeError as e:
            logger.error("Remove failed", key=resource.key, exposer=self.strategy.name, error=str(e))
            if announce:
                self.recorder.event(resource, WARNING, "UnexposeFailed", str(e))
            return
        log_reconcile_event(logger, "unexposed", key=resource.key, exposer=self.strategy.name)
        if announce:
            self.recorder.event(resource, NORMAL, "Unexposed",
                                f"Service no longer exposed using {self.strategy.name}")
