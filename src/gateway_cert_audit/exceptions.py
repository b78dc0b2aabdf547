"""Custom exceptions for gateway-cert-audit.

This module defines the exception hierarchy used throughout the application.
Errors fall into two groups: fatal ones that stop the whole scan, and
per-item ones that the scanner reports and then skips.
"""


class CertAuditError(Exception):
    """Base exception for all gateway-cert-audit errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all gateway-cert-audit errors with a single
    except clause if desired.
    """

    pass


class ClusterConnectionError(CertAuditError):
    """Raised when connection to the Kubernetes cluster fails.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The cluster is unreachable
    - Authentication fails
    - The namespace list cannot be read
    """

    pass


class BinaryNotFoundError(CertAuditError):
    """Raised when the openssl binary was explicitly requested but is not in PATH."""

    pass


class GatewayListingError(CertAuditError):
    """Raised when the gateways of a namespace cannot be listed.

    Listing failures are treated as systemic (credentials, API server,
    missing CRD) and abort the whole scan.
    """

    pass


class ExtractionError(CertAuditError):
    """Raised when the TLS secrets of a single gateway cannot be collected.

    This can occur when:
    - spec.servers is missing or is not a list
    - A server entry is not a mapping
    - A referenced credential secret cannot be fetched
    """

    pass


class DecodeError(CertAuditError):
    """Raised when a secret does not hold a decodable tls.crt certificate."""

    pass


class AnalysisError(CertAuditError):
    """Raised when the expiration date cannot be read from a certificate."""

    pass
