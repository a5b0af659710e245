"""List/watch change feed with a local cache and periodic resync."""

import math
import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from kubernetes import watch
from kubernetes.client.rest import ApiException

from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import Added, Deleted, Notification, Resource, TombstoneKey, Updated

logger = get_logger(__name__)

MAX_BACKOFF_SECONDS = 30


class Store:
    """Thread-safe cache of the last observed state, keyed by ``namespace/name``.

    Only the informer thread writes to it; other threads may read.
    """

    def __init__(self) -> None:
        self._items: Dict[str, Resource] = {}
        self._lock = threading.Lock()

    def update(self, resource: Resource) -> Optional[Resource]:
        """Store ``resource`` and return the previous state, if any."""
        with self._lock:
            old = self._items.get(resource.key)
            self._items[resource.key] = resource
            return old

    def delete(self, key: str) -> Optional[Resource]:
        with self._lock:
            return self._items.pop(key, None)

    def get(self, key: str) -> Optional[Resource]:
        with self._lock:
            return self._items.get(key)

    def list(self) -> List[Resource]:
        with self._lock:
            return list(self._items.values())

    def list_keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class Informer:
    """Feeds notifications for one resource kind to a handler on a single thread.

    Args:
        list_func: Kubernetes list method, e.g. ``CoreV1Api.list_namespaced_service``.
            It is also used for watching, so it must be the generated API method
            itself rather than a wrapper.
        handler: called once per notification, strictly one at a time
        resync_period: seconds between full redeliveries of the cache
        list_kwargs: keyword arguments for ``list_func`` (e.g. ``namespace``)
        watch_timeout: upper bound for a single watch request in seconds
        converter: turns an API object into a :class:`Resource`
        watch_factory: builds ``kubernetes.watch.Watch`` instances
    """

    def __init__(
        self,
        list_func: Callable[..., Any],
        handler: Callable[[Notification], None],
        resync_period: float,
        list_kwargs: Optional[Dict[str, Any]] = None,
        watch_timeout: int = 300,
        converter: Callable[[Any], Resource] = Resource.from_service,
        watch_factory: Callable[[], Any] = watch.Watch,
        resource_plural: str = "services",
    ) -> None:
        self.list_func = list_func
        self.list_kwargs = list_kwargs or {}
        self.handler = handler
        self.resync_period = resync_period
        self.watch_timeout = watch_timeout
        self.converter = converter
        self.watch_factory = watch_factory
        self.resource_plural = resource_plural

        self.store = Store()
        self.synced = threading.Event()
        self._stop = threading.Event()
        self._last_resync = time.monotonic()
        self._active_watcher: Optional[Any] = None
        self._watcher_lock = threading.Lock()

    def stop(self) -> None:
        """Stop consuming the feed and interrupt the open watch stream."""
        self._stop.set()
        with self._watcher_lock:
            active_watcher = self._active_watcher
        if active_watcher is not None:
            active_watcher.stop()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(self) -> None:
        """List, then watch until stopped, relisting when the watch expires."""
        log_function_entry(logger, "Informer.run", resource=self.resource_plural,
                           resync_period=self.resync_period, **self.list_kwargs)
        resource_version: Optional[str] = None
        listed = False
        backoff_seconds = 1

        while not self.stopped:
            try:
                if not listed:
                    resource_version = self.list()
                    listed = True
                resource_version = self.watch(resource_version)
                backoff_seconds = 1
            except ApiException as e:
                if e.status == 410:
                    logger.warning("Watch resource version expired, re-listing",
                                   resource=self.resource_plural,
                                   resource_version=resource_version)
                    listed = False
                    continue
                logger.error("Kubernetes API error", resource=self.resource_plural,
                             status=e.status, error=str(e))
                backoff_seconds = self._backoff(backoff_seconds)
            except Exception:
                logger.exception("Unexpected list/watch error", resource=self.resource_plural)
                backoff_seconds = self._backoff(backoff_seconds)

        self.synced.clear()
        log_function_exit(logger, "Informer.run", resource=self.resource_plural, status="stopped")

    def _backoff(self, seconds: int) -> int:
        self._stop.wait(timeout=seconds * (0.5 + random.random()))
        return min(seconds * 2, MAX_BACKOFF_SECONDS)

    def list(self) -> Optional[str]:
        """Replace the cache from a full list and return its resourceVersion.

        Keys that disappeared since the previous list are delivered as
        tombstone deletes, since their final state was never observed.
        """
        logger.info("Listing", resource=self.resource_plural, **self.list_kwargs)
        response = self.list_func(**self.list_kwargs)
        seen = set()
        for item in response.items or []:
            resource = self.converter(item)
            seen.add(resource.key)
            self._observe(resource)
        for key in self.store.list_keys():
            if key not in seen:
                self.store.delete(key)
                self.dispatch(Deleted(obj=TombstoneKey(key=key)))
        self._last_resync = time.monotonic()
        self.synced.set()
        logger.info("Listed", resource=self.resource_plural, count=len(seen), cached=len(self.store))
        return response.metadata.resource_version

    def watch(self, resource_version: Optional[str]) -> Optional[str]:
        """Consume one watch request and return the last seen resourceVersion."""
        watcher = self.watch_factory()
        with self._watcher_lock:
            self._active_watcher = watcher
        try:
            stream = watcher.stream(
                self.list_func,
                resource_version=resource_version,
                timeout_seconds=self._next_watch_timeout(),
                allow_watch_bookmarks=True,
                **self.list_kwargs,
            )
            for event in stream:
                if self.stopped:
                    break
                resource_version = self._handle_event(event, resource_version)
                if self._resync_due():
                    self.resync()
        finally:
            watcher.stop()
            with self._watcher_lock:
                if self._active_watcher is watcher:
                    self._active_watcher = None

        if not self.stopped and self._resync_due():
            self.resync()
        return resource_version

    def _handle_event(self, event: Dict[str, Any], resource_version: Optional[str]) -> Optional[str]:
        event_type = str(event.get("type", ""))
        obj = event.get("object")
        if event_type == "ERROR":
            raw = event.get("raw_object") or obj or {}
            raise ApiException(status=raw.get("code"), reason=raw.get("message"))
        if obj is None:
            return resource_version

        metadata = getattr(obj, "metadata", None)
        if metadata is not None and metadata.resource_version:
            resource_version = metadata.resource_version
        if event_type == "BOOKMARK":
            return resource_version

        resource = self.converter(obj)
        logger.debug("Received event", type=event_type, key=resource.key,
                     resource_version=resource.resource_version)
        if event_type in ("ADDED", "MODIFIED"):
            self._observe(resource)
        elif event_type == "DELETED":
            self.store.delete(resource.key)
            self.dispatch(Deleted(obj=resource))
        else:
            logger.warning("Ignoring unknown watch event", type=event_type, key=resource.key)
        return resource_version

    def _observe(self, resource: Resource) -> None:
        old = self.store.update(resource)
        if old is None:
            self.dispatch(Added(resource=resource))
        else:
            self.dispatch(Updated(old=old, new=resource))

    def resync(self) -> None:
        """Redeliver every cached resource as an update to itself."""
        resources = self.store.list()
        logger.debug("Resyncing", resource=self.resource_plural, count=len(resources))
        for resource in resources:
            if self.stopped:
                break
            self.dispatch(Updated(old=resource, new=resource))
        self._last_resync = time.monotonic()

    def dispatch(self, notification: Notification) -> None:
        """Hand one notification to the handler; failures never stop the feed."""
        try:
            self.handler(notification)
        except Exception:
            logger.exception("Notification handler failed", notification=type(notification).__name__)

    def _resync_remaining(self) -> float:
        return self.resync_period - (time.monotonic() - self._last_resync)

    def _resync_due(self) -> bool:
        return self._resync_remaining() <= 0

    def _next_watch_timeout(self) -> int:
        return max(1, min(self.watch_timeout, math.ceil(self._resync_remaining())))
