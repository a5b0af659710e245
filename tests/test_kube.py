"""Tests for Kubernetes client construction."""

from unittest.mock import patch

import pytest
from kubernetes.config.config_exception import ConfigException

from exposecontroller.exceptions import ConfigurationError
from exposecontroller.kube import create_api_client
from exposecontroller.models import ControllerConfig


class TestCreateApiClient:
    """Tests for create_api_client."""

    @patch("exposecontroller.kube.client.ApiClient")
    @patch("exposecontroller.kube.config.load_kube_config")
    def test_with_kubeconfig(self, mock_load_config, mock_api_client):
        """Test loading credentials from a kubeconfig file."""
        controller_config = ControllerConfig(kubeconfig_path="/path/to/kubeconfig", context="test-context")

        api_client = create_api_client(controller_config)

        mock_load_config.assert_called_once_with(
            config_file="/path/to/kubeconfig",
            context="test-context"
        )
        assert api_client is mock_api_client.return_value

    @patch("exposecontroller.kube.client.ApiClient")
    @patch("exposecontroller.kube.config.load_incluster_config")
    def test_in_cluster(self, mock_load_incluster, mock_api_client):
        """Test falling back to the in-cluster service account."""
        create_api_client(ControllerConfig())

        mock_load_incluster.assert_called_once()
        mock_api_client.assert_called_once()

    @patch("exposecontroller.kube.config.load_incluster_config")
    def test_credentials_failure(self, mock_load_incluster):
        """Test that missing credentials fail as a configuration error."""
        mock_load_incluster.side_effect = ConfigException("Service host/port is not set.")

        with pytest.raises(ConfigurationError, match="cluster credentials"):
            create_api_client(ControllerConfig())
