"""Data models for gateway-cert-audit.

This module turns the loosely-typed custom resource dictionaries returned
by the Kubernetes API into small typed structures, so the rules for
tolerating missing fields live in one place.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

PASSTHROUGH_MODE = "PASSTHROUGH"


class TlsPolicy(str, Enum):
    """TLS handling derived from a single gateway server block."""

    NO_TLS = "no-tls"
    PASSTHROUGH = "passthrough"
    TERMINATED = "terminated"
    MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class ServerTls:
    """TLS policy of one gateway server entry.

    Attributes:
        policy: How the gateway handles TLS for this server.
        credential_name: Name of the certificate secret, set only for
            terminated servers.

    """

    policy: TlsPolicy
    credential_name: str | None = None

    @classmethod
    def from_server(cls, server: Mapping[str, Any]) -> "ServerTls":
        """Derive the TLS policy from a raw server entry.

        Only ``tls.mode`` and ``tls.credentialName`` are read; every other
        field is ignored.

        Args:
            server: A single element of the gateway's spec.servers list.

        Returns:
            The parsed ServerTls.

        """
        tls = server.get("tls")
        if not isinstance(tls, Mapping):
            return cls(TlsPolicy.NO_TLS)

        mode = tls.get("mode")
        if not isinstance(mode, str):
            return cls(TlsPolicy.MALFORMED)
        if mode == PASSTHROUGH_MODE:
            return cls(TlsPolicy.PASSTHROUGH)

        credential_name = tls.get("credentialName")
        if not isinstance(credential_name, str):
            return cls(TlsPolicy.MALFORMED)

        return cls(TlsPolicy.TERMINATED, credential_name)


@dataclass(frozen=True, slots=True)
class Gateway:
    """An Istio Gateway as listed from the cluster.

    Attributes:
        name: The gateway name.
        namespace: The namespace the gateway lives in.
        servers: The raw spec.servers value, or None when absent.

    """

    name: str
    namespace: str
    servers: Any = None

    @classmethod
    def from_resource(cls, resource: Mapping[str, Any], namespace: str) -> "Gateway":
        """Build a Gateway from a custom objects API item.

        Args:
            resource: One element of the ``items`` list of a gateway listing.
            namespace: Namespace used when the item carries no metadata.namespace.

        Returns:
            The Gateway.

        """
        metadata = resource.get("metadata") or {}
        spec = resource.get("spec")
        servers = spec.get("servers") if isinstance(spec, Mapping) else None
        return cls(
            name=str(metadata.get("name", "")),
            namespace=str(metadata.get("namespace") or namespace),
            servers=servers,
        )


class Secret(NamedTuple):
    """A Kubernetes secret with its values already base64-decoded.

    Attributes:
        name: The secret name.
        namespace: The namespace of the secret.
        data: Mapping of data keys to raw bytes.

    """

    name: str
    namespace: str
    data: dict[str, bytes]


class ResultRecord(NamedTuple):
    """Expiration date of one certificate referenced by one gateway."""

    namespace: str
    gateway: str
    secret: str
    expiration: str

    def line(self) -> str:
        """Render the record as a single report line."""
        return (
            f"Certificate {self.secret} in gateway {self.gateway} "
            f"in namespace {self.namespace} expiration date is {self.expiration}"
        )


class ScanFailure(NamedTuple):
    """A recoverable failure scoped to one gateway or one of its secrets."""

    namespace: str
    gateway: str
    reason: str
    secret: str | None = None

    def line(self) -> str:
        """Render the failure as a single diagnostic line."""
        if self.secret is None:
            return f"error getting secrets for gateway {self.gateway} in namespace {self.namespace}: {self.reason}"
        return (
            f"error analyzing certificate {self.secret} for gateway {self.gateway} "
            f"in namespace {self.namespace}: {self.reason}"
        )


@dataclass(slots=True)
class ScanReport:
    """Everything gathered during a scan.

    Attributes:
        namespaces: Number of namespaces whose gateways were listed.
        gateways: Number of gateways visited.
        records: Successfully analyzed certificates, in emission order.
        failures: Recoverable failures, in emission order.

    """

    namespaces: int = 0
    gateways: int = 0
    records: list[ResultRecord] = field(default_factory=list)
    failures: list[ScanFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether the scan finished without recoverable failures."""
        return not self.failures
