"""Kubernetes API client construction."""

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from .exceptions import ConfigurationError
from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import ControllerConfig

logger = get_logger(__name__)


def create_api_client(controller_config: ControllerConfig) -> client.ApiClient:
    """Load cluster credentials and return a configured API client.

    Uses the configured kubeconfig file when one is given, the in-cluster
    service account otherwise.
    """
    log_function_entry(logger, "create_api_client",
                       kubeconfig_path=controller_config.kubeconfig_path,
                       context=controller_config.context)
    try:
        if controller_config.kubeconfig_path:
            logger.debug("Loading kubeconfig from file",
                         kubeconfig_path=controller_config.kubeconfig_path,
                         context=controller_config.context)
            config.load_kube_config(
                config_file=controller_config.kubeconfig_path,
                context=controller_config.context
            )
        else:
            logger.debug("Loading in-cluster config")
            config.load_incluster_config()
    except (ConfigException, OSError) as e:
        logger.error("Failed to load cluster credentials",
                     error=str(e),
                     kubeconfig_path=controller_config.kubeconfig_path,
                     context=controller_config.context)
        raise ConfigurationError(f"Failed to load cluster credentials: {e}") from e

    api_client = client.ApiClient()
    log_function_exit(logger, "create_api_client", status="success")
    return api_client
