"""Tests for exposecontroller models."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from exposecontroller.models import (
    Added,
    ControllerConfig,
    Deleted,
    ExposeMarker,
    Resource,
    TombstoneKey,
)


def make_service(namespace="ns1", name="svc1", labels=None, annotations=None, ports=None):
    service = MagicMock()
    service.metadata.namespace = namespace
    service.metadata.name = name
    service.metadata.labels = labels
    service.metadata.annotations = annotations
    service.metadata.resource_version = "42"
    service.spec.ports = ports
    return service


class TestResource:
    """Tests for Resource model."""

    def test_key(self):
        """Test the namespace/name key."""
        assert Resource(namespace="ns1", name="svc1").key == "ns1/svc1"

    def test_defaults(self):
        """Test that labels and ports default to empty."""
        resource = Resource(namespace="ns1", name="svc1")
        assert resource.labels == {}
        assert resource.annotations == {}
        assert resource.ports == []
        assert resource.resource_version is None

    def test_from_service(self):
        """Test conversion from a V1Service."""
        port = MagicMock()
        port.name = "http"
        port.port = 80
        port.protocol = None
        port.target_port = 8080
        service = make_service(labels={"expose": "true"}, annotations={"a": "b"}, ports=[port])

        resource = Resource.from_service(service)

        assert resource.key == "ns1/svc1"
        assert resource.labels == {"expose": "true"}
        assert resource.annotations == {"a": "b"}
        assert resource.ports[0].port == 80
        assert resource.ports[0].target_port == 8080
        assert resource.ports[0].protocol == "TCP"
        assert resource.resource_version == "42"

    def test_from_service_without_labels(self):
        """Test conversion when the API returns None for labels and ports."""
        resource = Resource.from_service(make_service())
        assert resource.labels == {}
        assert resource.ports == []

    def test_frozen(self):
        """Test that resources cannot be mutated."""
        resource = Resource(namespace="ns1", name="svc1")
        with pytest.raises(ValidationError):
            resource.name = "other"


class TestExposeMarker:
    """Tests for ExposeMarker."""

    def test_default_marker(self):
        """Test the default label pair."""
        marker = ExposeMarker()
        assert marker.key == "expose"
        assert marker.value == "true"

    def test_matches_exact_pair(self):
        """Test that only the exact key/value pair matches."""
        marker = ExposeMarker()
        assert marker.matches(Resource(namespace="a", name="b", labels={"expose": "true"}))
        assert not marker.matches(Resource(namespace="a", name="b", labels={"expose": "false"}))
        assert not marker.matches(Resource(namespace="a", name="b", labels={"other": "true"}))
        assert not marker.matches(Resource(namespace="a", name="b"))

    def test_only_labels_matter(self):
        """Test that annotations never affect the decision."""
        marker = ExposeMarker()
        resource = Resource(namespace="a", name="b", annotations={"expose": "true"})
        assert not marker.matches(resource)

    def test_custom_marker(self):
        """Test a custom label pair."""
        marker = ExposeMarker(key="example.com/public", value="yes")
        assert marker.matches(Resource(namespace="a", name="b", labels={"example.com/public": "yes"}))


class TestNotifications:
    """Tests for notification models."""

    def test_deleted_keeps_full_resource(self):
        """Test that a full resource payload stays a Resource."""
        resource = Resource(namespace="ns1", name="svc1")
        assert isinstance(Deleted(obj=resource).obj, Resource)

    def test_deleted_keeps_tombstone(self):
        """Test that a degraded payload stays a TombstoneKey."""
        assert isinstance(Deleted(obj=TombstoneKey(key="ns1/svc1")).obj, TombstoneKey)

    def test_added(self):
        """Test the Added notification."""
        resource = Resource(namespace="ns1", name="svc1")
        assert Added(resource=resource).resource is resource


class TestControllerConfig:
    """Tests for ControllerConfig model."""

    def test_defaults(self):
        """Test default configuration."""
        config = ControllerConfig()
        assert config.namespace == ""
        assert config.exposer == "ingress"
        assert config.domain is None
        assert config.resync_period == 30.0
        assert config.expose_label == ExposeMarker()
        assert config.record_events is True

    def test_exposer_normalized(self):
        """Test that the exposer name is normalized."""
        assert ControllerConfig(exposer=" LoadBalancer ").exposer == "loadbalancer"

    def test_nested_expose_label(self):
        """Test building the marker from a mapping."""
        config = ControllerConfig(expose_label={"key": "public", "value": "yes"})
        assert config.expose_label.key == "public"

    @pytest.mark.parametrize("field", ["resync_period", "watch_timeout"])
    def test_non_positive_intervals_rejected(self, field):
        """Test that intervals must be positive."""
        with pytest.raises(ValidationError):
            ControllerConfig(**{field: 0})
