"""Shared test fixtures for gateway-cert-audit tests."""

import base64
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from gateway_cert_audit.models import Gateway, Secret

CERT_NOT_AFTER = datetime(2030, 1, 1, tzinfo=timezone.utc)


def make_gateway_resource(name: str, namespace: str, servers: Any) -> dict[str, Any]:
    """Build a gateway item as returned by the custom objects API."""
    return {
        "apiVersion": "networking.istio.io/v1alpha3",
        "kind": "Gateway",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"selector": {"istio": "ingressgateway"}, "servers": servers},
    }


def make_gateway(name: str, namespace: str, *credential_names: str, mode: str = "SIMPLE") -> Gateway:
    """Build a Gateway with one TLS server per credential name."""
    servers = [
        {
            "port": {"number": 443, "name": "https", "protocol": "HTTPS"},
            "hosts": [f"{credential}.example.com"],
            "tls": {"mode": mode, "credentialName": credential},
        }
        for credential in credential_names
    ]
    return Gateway(name=name, namespace=namespace, servers=servers)


@pytest.fixture(scope="session")
def certificate_pem() -> bytes:
    """Self-signed PEM certificate expiring on Jan 1 2030."""
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "shop.example.com")])
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime(2024, 1, 1, tzinfo=timezone.utc))
        .not_valid_after(CERT_NOT_AFTER)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def certificate_der(certificate_pem) -> bytes:
    """DER form of certificate_pem."""
    return x509.load_pem_x509_certificate(certificate_pem).public_bytes(serialization.Encoding.DER)


@pytest.fixture
def tls_secret(certificate_pem):
    """Factory for decoded TLS secrets holding the test certificate."""

    def _make(name: str, namespace: str = "shop") -> Secret:
        return Secret(name=name, namespace=namespace, data={"tls.crt": certificate_pem, "tls.key": b"key"})

    return _make


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}, {"name": "other-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def mock_core_v1_api():
    """Mock CoreV1Api for namespace listing and secret reads."""
    with patch("kubernetes.client.CoreV1Api") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        ns_items = []
        for name in ["default", "kube-system", "shop", "xcp-multicluster", "billing"]:
            ns = MagicMock()
            ns.metadata.name = name
            ns_items.append(ns)
        api_instance.list_namespace.return_value.items = ns_items
        yield api_instance


@pytest.fixture
def mock_custom_objects_api():
    """Mock CustomObjectsApi for gateway listing."""
    with patch("kubernetes.client.CustomObjectsApi") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        api_instance.list_namespaced_custom_object.return_value = {"items": []}
        yield api_instance


@pytest.fixture
def cluster_mocks(mock_kube_contexts, mock_kube_config, mock_core_v1_api, mock_custom_objects_api):
    """Combined fixture for creating a Cluster instance without cluster access."""
    return {
        "contexts": mock_kube_contexts,
        "config": mock_kube_config,
        "core_api": mock_core_v1_api,
        "custom_api": mock_custom_objects_api,
    }


@pytest.fixture
def secret_payload():
    """Build a V1Secret-like mock whose data is base64 encoded like the API returns it."""

    def _make(data: dict[str, bytes] | None) -> MagicMock:
        secret = MagicMock()
        secret.data = None if data is None else {k: base64.b64encode(v).decode() for k, v in data.items()}
        return secret

    return _make
