"""Exposecontroller: expose labeled Kubernetes Services outside the cluster."""

__version__ = "0.1.0"
__author__ = "Scott Idler"
__email__ = "scott@idler.me"

# Lazy imports to avoid loading heavy dependencies for CLI usage
__all__ = [
    "ExposeController",
    "ReconcileHandler",
    "Informer",
    "ControllerConfig",
    "ExposeMarker",
    "Resource",
]


def __getattr__(name):
    if name == "ExposeController":
        from .controller import ExposeController
        return ExposeController
    elif name == "ReconcileHandler":
        from .handler import ReconcileHandler
        return ReconcileHandler
    elif name == "Informer":
        from .informer import Informer
        return Informer
    elif name in ("ControllerConfig", "ExposeMarker", "Resource"):
        from . import models
        return getattr(models, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
