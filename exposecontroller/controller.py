"""Expose controller lifecycle: wires the feed, the handler and the strategy."""

import threading
from typing import Optional

from kubernetes import client

from .events import EventRecorder, NullEventRecorder
from .handler import ReconcileHandler
from .informer import Informer, Store
from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import ControllerConfig
from .strategy import ExposeStrategy, new_strategy

logger = get_logger(__name__)


class ExposeController:
    """Keeps Service exposure in sync with the expose label.

    Construction selects the exposure strategy and fails with
    :class:`~exposecontroller.exceptions.ConfigurationError` before any
    Service is read. :meth:`run` blocks until :meth:`stop` is called.
    """

    def __init__(
        self,
        controller_config: ControllerConfig,
        api_client: client.ApiClient,
        strategy: Optional[ExposeStrategy] = None,
        recorder: Optional[NullEventRecorder] = None,
    ) -> None:
        log_function_entry(logger, "ExposeController.__init__",
                           namespace=controller_config.namespace,
                           exposer=controller_config.exposer)
        self.config = controller_config
        core_v1 = client.CoreV1Api(api_client)

        if strategy is None:
            strategy = new_strategy(controller_config.exposer, controller_config.domain, api_client)
        if recorder is None:
            recorder = EventRecorder(core_v1) if controller_config.record_events else NullEventRecorder()
        self.handler = ReconcileHandler(strategy, controller_config.expose_label, recorder)

        if controller_config.namespace:
            list_func = core_v1.list_namespaced_service
            list_kwargs = {"namespace": controller_config.namespace}
        else:
            list_func = core_v1.list_service_for_all_namespaces
            list_kwargs = {}
        self.informer = Informer(
            list_func,
            self.handler.handle,
            controller_config.resync_period,
            list_kwargs=list_kwargs,
            watch_timeout=controller_config.watch_timeout,
        )

        self._stop_event = threading.Event()
        self._stop_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        log_function_exit(logger, "ExposeController.__init__", status="success")

    @property
    def store(self) -> Store:
        """Read-only view of the Services observed so far."""
        return self.informer.store

    def run(self) -> None:
        """Start consuming Service changes and block until stopped.

        Returning does not wait for an in-flight exposure call to finish.
        """
        if self._stop_event.is_set():
            logger.warning("Expose controller already stopped, not starting")
            return
        logger.info("Starting expose controller",
                    namespace=self.config.namespace or "<all>",
                    exposer=self.handler.strategy.name,
                    resync_period=self.config.resync_period)
        self._thread = threading.Thread(target=self.informer.run, name="expose-informer", daemon=True)
        self._thread.start()
        self._stop_event.wait()
        logger.info("Expose controller stopped")

    def stop(self) -> None:
        """Request shutdown. Safe to call more than once and before :meth:`run`."""
        with self._stop_lock:
            if self._stop_event.is_set():
                logger.debug("Stop already requested")
                return
            logger.info("Stopping expose controller")
            self._stop_event.set()
        self.informer.stop()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()
