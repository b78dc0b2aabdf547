"""Tests for cluster.py module."""

from unittest.mock import patch

import click
import pytest
from conftest import make_gateway_resource
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError, NewConnectionError

from gateway_cert_audit.cluster import EXCLUDED_NAMESPACES, Cluster, describe_api_error
from gateway_cert_audit.exceptions import ClusterConnectionError, GatewayListingError


class TestClusterContextSelection:
    """Tests for context selection functionality."""

    def test_set_context_without_selection(self, cluster_mocks):
        """Test using current context without selection."""
        cluster = Cluster(select_context=False)

        assert cluster.context == "test-context"
        cluster_mocks["config"].assert_called_once_with(context="test-context")

    def test_set_context_with_selection(self, mock_kube_config, mock_core_v1_api, mock_custom_objects_api):
        """Test prompting user for context selection."""
        with (
            patch("kubernetes.config.list_kube_config_contexts") as mock_contexts,
            patch("questionary.select") as mock_select,
        ):
            mock_contexts.return_value = (
                [{"name": "context1"}, {"name": "context2"}, {"name": "context3"}],
                {"name": "context1"},
            )
            mock_select.return_value.ask.return_value = "context2"

            cluster = Cluster(select_context=True)

            assert cluster.context == "context2"
            mock_select.assert_called_once()

    def test_selection_cancelled(self, mock_kube_contexts, mock_kube_config):
        """Test cancelling the prompt aborts."""
        with patch("questionary.select") as mock_select:
            mock_select.return_value.ask.return_value = None

            with pytest.raises(click.Abort):
                Cluster(select_context=True)

    def test_explicit_context(self, cluster_mocks):
        """Test an explicit context overrides the current one."""
        cluster = Cluster(select_context=False, context="other-context")

        assert cluster.context == "other-context"
        cluster_mocks["config"].assert_called_once_with(context="other-context")

    def test_unknown_context(self, mock_kube_contexts, mock_kube_config):
        """Test an explicit context missing from kubeconfig is rejected."""
        with pytest.raises(ClusterConnectionError) as exc_info:
            Cluster(select_context=False, context="nope")

        assert "nope" in str(exc_info.value)

    def test_set_context_invalid_kubeconfig(self, monkeypatch):
        """Test error when kubeconfig is invalid or missing."""
        monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
        with patch("kubernetes.config.list_kube_config_contexts") as mock_contexts:
            mock_contexts.side_effect = ConfigException("Invalid kube-config file. No configuration found.")

            with pytest.raises(ClusterConnectionError) as exc_info:
                Cluster(select_context=False)

            assert "Invalid or missing kubeconfig" in str(exc_info.value)

    def test_in_cluster_fallback(self, monkeypatch, mock_core_v1_api, mock_custom_objects_api):
        """Test the service account config is used inside a pod."""
        monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.0.0.1")
        with (
            patch("kubernetes.config.list_kube_config_contexts") as mock_contexts,
            patch("kubernetes.config.load_incluster_config") as mock_incluster,
        ):
            mock_contexts.side_effect = ConfigException("No configuration found.")

            cluster = Cluster(select_context=False)

            assert cluster.context == "in-cluster"
            mock_incluster.assert_called_once()


class TestClusterNamespaces:
    """Tests for namespace operations."""

    def test_excluded_namespaces_removed(self, cluster_mocks):
        """Test the fixed exclusions are never returned."""
        namespaces = Cluster(select_context=False).list_namespaces()

        assert namespaces == ["default", "shop", "billing"]
        for excluded in EXCLUDED_NAMESPACES:
            assert excluded not in namespaces

    def test_namespace_listing_failure(self, cluster_mocks):
        """Test a namespace listing failure is a connection error."""
        connection_error = NewConnectionError(None, "Failed to establish a new connection: [Errno 111] Connection refused")
        cluster_mocks["core_api"].list_namespace.side_effect = MaxRetryError(
            pool=None, url="/api/v1/namespaces", reason=connection_error
        )

        with pytest.raises(ClusterConnectionError) as exc_info:
            Cluster(select_context=False).list_namespaces()

        assert "Unable to get the list of namespaces" in str(exc_info.value)

    def test_namespace_listing_forbidden(self, cluster_mocks):
        """Test an API rejection is a connection error."""
        cluster_mocks["core_api"].list_namespace.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(ClusterConnectionError) as exc_info:
            Cluster(select_context=False).list_namespaces()

        assert "(403) Forbidden" in str(exc_info.value)


class TestClusterGateways:
    """Tests for gateway listing."""

    def test_list_gateways(self, cluster_mocks):
        """Test gateways are read from the Istio custom resource."""
        servers = [{"tls": {"mode": "SIMPLE", "credentialName": "shop-cert"}}]
        cluster_mocks["custom_api"].list_namespaced_custom_object.return_value = {
            "items": [make_gateway_resource("edge", "shop", servers)]
        }

        gateways = Cluster(select_context=False).list_gateways("shop")

        cluster_mocks["custom_api"].list_namespaced_custom_object.assert_called_once_with(
            "networking.istio.io", "v1alpha3", "shop", "gateways"
        )
        assert len(gateways) == 1
        assert gateways[0].name == "edge"
        assert gateways[0].namespace == "shop"
        assert gateways[0].servers == servers

    def test_no_gateways(self, cluster_mocks):
        """Test an empty listing."""
        assert Cluster(select_context=False).list_gateways("shop") == []

    def test_listing_failure(self, cluster_mocks):
        """Test a listing failure names the namespace."""
        cluster_mocks["custom_api"].list_namespaced_custom_object.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        with pytest.raises(GatewayListingError) as exc_info:
            Cluster(select_context=False).list_gateways("shop")

        assert "namespace shop" in str(exc_info.value)


class TestClusterSecrets:
    """Tests for secret reads."""

    def test_get_secret_decodes_values(self, cluster_mocks, secret_payload, certificate_pem):
        """Test API base64 values are decoded once."""
        cluster_mocks["core_api"].read_namespaced_secret.return_value = secret_payload(
            {"tls.crt": certificate_pem, "tls.key": b"private"}
        )

        secret = Cluster(select_context=False).get_secret("shop", "shop-cert")

        cluster_mocks["core_api"].read_namespaced_secret.assert_called_once_with("shop-cert", "shop")
        assert secret.name == "shop-cert"
        assert secret.namespace == "shop"
        assert secret.data["tls.crt"] == certificate_pem
        assert secret.data["tls.key"] == b"private"

    def test_get_secret_without_data(self, cluster_mocks, secret_payload):
        """Test a secret without data has an empty mapping."""
        cluster_mocks["core_api"].read_namespaced_secret.return_value = secret_payload(None)

        assert Cluster(select_context=False).get_secret("shop", "empty").data == {}

    def test_get_secret_propagates_api_errors(self, cluster_mocks):
        """Test API errors are left to the caller."""
        cluster_mocks["core_api"].read_namespaced_secret.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(ApiException):
            Cluster(select_context=False).get_secret("shop", "missing")


class TestDescribeApiError:
    """Tests for error descriptions."""

    def test_api_exception(self):
        """Test API errors are reduced to status and reason."""
        assert describe_api_error(ApiException(status=404, reason="Not Found")) == "(404) Not Found"

    def test_other_errors(self):
        """Test other errors use their message."""
        assert describe_api_error(ValueError("Incorrect padding")) == "Incorrect padding"
