"""Collection of the TLS secrets referenced by a gateway."""

from collections.abc import Mapping

from icecream import ic
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError

from gateway_cert_audit.cluster import Cluster, describe_api_error
from gateway_cert_audit.exceptions import ExtractionError
from gateway_cert_audit.models import Gateway, Secret, ServerTls, TlsPolicy


def parse_servers(gateway: Gateway) -> list[ServerTls]:
    """Parse the server list of a gateway into TLS policies.

    Args:
        gateway: The gateway to inspect.

    Returns:
        One ServerTls per server entry, in list order.

    Raises:
        ExtractionError: If spec.servers is missing or not a list, or if any
            entry is not a mapping. A single bad entry invalidates the whole
            gateway.

    """
    if not isinstance(gateway.servers, list):
        raise ExtractionError("error getting gateway servers: spec.servers is missing or not a list")

    policies: list[ServerTls] = []
    for server in gateway.servers:
        if not isinstance(server, Mapping):
            raise ExtractionError("invalid server object found")
        policies.append(ServerTls.from_server(server))

    return policies


def extract_secrets(gateway: Gateway, cluster: Cluster) -> list[Secret]:
    """Fetch every secret a gateway terminates TLS with.

    Pass-through servers, servers without a tls block and servers without a
    credential name are skipped. Secrets are read from the gateway's own
    namespace and returned in server order, duplicates included.

    Args:
        gateway: The gateway to inspect.
        cluster: Cluster used to fetch the secrets.

    Returns:
        The fetched secrets.

    Raises:
        ExtractionError: If the server list is malformed or a secret cannot
            be fetched.

    """
    secrets: list[Secret] = []

    for server in parse_servers(gateway):
        if server.policy is not TlsPolicy.TERMINATED or server.credential_name is None:
            ic(gateway.name, server.policy)
            continue

        try:
            secrets.append(cluster.get_secret(gateway.namespace, server.credential_name))
        except (ApiException, MaxRetryError, ValueError) as e:
            raise ExtractionError(
                f"error getting secret {server.credential_name} in namespace {gateway.namespace}: "
                f"{describe_api_error(e)}"
            ) from e

    return secrets
