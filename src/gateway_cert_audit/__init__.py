"""gateway-cert-audit: TLS certificate expiration report for Istio gateways.

This package walks every namespace of a cluster, finds the certificate
secrets referenced by Istio Gateway resources, and reports when each
certificate expires.

Example usage:
    from gateway_cert_audit import Cluster, ExpirationAnalyzer, Scanner

    cluster = Cluster(select_context=False)
    report = Scanner(cluster, ExpirationAnalyzer()).scan(cluster.list_namespaces())
"""

__version__ = "0.1.0"

from gateway_cert_audit.certificates import Backend, ExpirationAnalyzer, decode_certificate
from gateway_cert_audit.cli import cli
from gateway_cert_audit.cluster import EXCLUDED_NAMESPACES, Cluster
from gateway_cert_audit.exceptions import (
    AnalysisError,
    BinaryNotFoundError,
    CertAuditError,
    ClusterConnectionError,
    DecodeError,
    ExtractionError,
    GatewayListingError,
)
from gateway_cert_audit.extractor import extract_secrets, parse_servers
from gateway_cert_audit.models import Gateway, ResultRecord, ScanFailure, ScanReport, Secret, ServerTls, TlsPolicy
from gateway_cert_audit.scanner import Scanner

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Backend",
    "Cluster",
    "ExpirationAnalyzer",
    "Scanner",
    # Functions
    "decode_certificate",
    "extract_secrets",
    "parse_servers",
    # Models
    "EXCLUDED_NAMESPACES",
    "Gateway",
    "ResultRecord",
    "ScanFailure",
    "ScanReport",
    "Secret",
    "ServerTls",
    "TlsPolicy",
    # Exceptions
    "CertAuditError",
    "AnalysisError",
    "BinaryNotFoundError",
    "ClusterConnectionError",
    "DecodeError",
    "ExtractionError",
    "GatewayListingError",
]
