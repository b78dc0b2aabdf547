"""Kubernetes cluster interaction utilities.

This module provides the Cluster class, the read-only view of the cluster
used by the scanner: namespaces, Istio gateways and secrets.
"""

import base64
import os
from typing import Any

import click
import questionary
from icecream import ic
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from gateway_cert_audit import console
from gateway_cert_audit.exceptions import ClusterConnectionError, GatewayListingError
from gateway_cert_audit.models import Gateway, Secret
from gateway_cert_audit.styles import POINTER, PROMPT_STYLE, QMARK

# Namespaces that are never scanned
EXCLUDED_NAMESPACES: tuple[str, ...] = ("kube-system", "xcp-multicluster")

GATEWAY_GROUP = "networking.istio.io"
GATEWAY_VERSION = "v1alpha3"
GATEWAY_PLURAL = "gateways"

IN_CLUSTER_CONTEXT = "in-cluster"


def describe_api_error(err: Exception) -> str:
    """Return a one-line description of a Kubernetes client error.

    Args:
        err: An ApiException, MaxRetryError or any other exception.

    Returns:
        A short human readable cause.

    """
    if isinstance(err, ApiException):
        return f"({err.status}) {err.reason}"
    if isinstance(err, MaxRetryError):
        return f"failed to connect to the Kubernetes cluster: {err.reason}"
    return str(err)


class Cluster:
    """Read access to the namespaces, gateways and secrets of a cluster.

    Attributes:
        context: The active Kubernetes context name.
        core_api: CoreV1Api client for namespaces and secrets.
        custom_api: CustomObjectsApi client for Istio gateways.

    """

    def __init__(self, *, select_context: bool, context: str | None = None) -> None:
        """Load the cluster configuration and build the API clients.

        Args:
            select_context: If True, prompt user to select a context.
                           Must be passed as a keyword argument.
            context: Explicit context name, used when select_context is False.

        Raises:
            ClusterConnectionError: If no usable cluster configuration exists.

        """
        self.context: str = self._load_config(select_context=select_context, context=context)
        self.core_api = client.CoreV1Api()
        self.custom_api = client.CustomObjectsApi()

    @classmethod
    def _load_config(cls, *, select_context: bool, context: str | None) -> str:
        """Load kubeconfig, or the in-cluster service account as a fallback.

        Returns:
            The name of the context in use.

        Raises:
            ClusterConnectionError: If neither configuration can be loaded.

        """
        try:
            selected = cls._set_context(select_context=select_context, context=context)
        except ClusterConnectionError:
            if context is not None or select_context or not os.environ.get("KUBERNETES_SERVICE_HOST"):
                raise
            try:
                config.load_incluster_config()
            except ConfigException as e:
                raise ClusterConnectionError(f"Invalid in-cluster configuration: {e}") from e
            console.action(f"Working with {console.highlight(IN_CLUSTER_CONTEXT)} cluster")
            return IN_CLUSTER_CONTEXT

        try:
            config.load_kube_config(context=selected)
        except ConfigException as e:
            raise ClusterConnectionError(f"Unable to load context '{selected}': {e}") from e
        return selected

    @staticmethod
    def _set_context(*, select_context: bool, context: str | None = None) -> str:
        """Set the Kubernetes context to use.

        Args:
            select_context: If True, prompt user to select a context.
                           Must be passed as a keyword argument.
            context: Explicit context name to use instead of the current one.

        Returns:
            The selected or current context name.

        Raises:
            ClusterConnectionError: If kubeconfig is invalid or missing, or
                the requested context does not exist.
            click.Abort: If user cancels context selection.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts()
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        context_names: list[str] = [item["name"] for item in contexts]
        if select_context:
            selected: str | None = questionary.select(
                "Select context to work with",
                choices=context_names,
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).ask()
            if selected is None:
                console.warning("Context selection cancelled.")
                raise click.Abort()
        elif context is not None:
            if context not in context_names:
                raise ClusterConnectionError(f"Context '{context}' not found in kubeconfig")
            selected = context
        else:
            selected = str(current_context["name"])
        console.action(f"Working with {console.highlight(selected)} cluster")
        return selected

    def list_namespaces(self) -> list[str]:
        """List the namespaces eligible for scanning.

        The fixed exclusions in EXCLUDED_NAMESPACES are always removed.

        Returns:
            Namespace names in the order returned by the API.

        Raises:
            ClusterConnectionError: If the namespaces cannot be listed.

        """
        try:
            items: list[Any] = self.core_api.list_namespace().items
        except (ApiException, MaxRetryError) as e:
            raise ClusterConnectionError(
                f"Unable to get the list of namespaces: {describe_api_error(e)}"
            ) from e

        ns_list = [ns.metadata.name for ns in items if ns.metadata.name not in EXCLUDED_NAMESPACES]
        ic(ns_list)

        return ns_list

    def list_gateways(self, namespace: str) -> list[Gateway]:
        """List the Istio gateways of a namespace.

        Args:
            namespace: The namespace to list.

        Returns:
            The gateways found, possibly empty.

        Raises:
            GatewayListingError: If the gateways cannot be listed.

        """
        try:
            response: dict[str, Any] = self.custom_api.list_namespaced_custom_object(
                GATEWAY_GROUP,
                GATEWAY_VERSION,
                namespace,
                GATEWAY_PLURAL,
            )
        except (ApiException, MaxRetryError) as e:
            raise GatewayListingError(
                f"Unable to list gateways in namespace {namespace}: {describe_api_error(e)}"
            ) from e

        gateways = [Gateway.from_resource(item, namespace) for item in response.get("items") or []]
        ic(namespace, [gw.name for gw in gateways])

        return gateways

    def get_secret(self, namespace: str, name: str) -> Secret:
        """Fetch a secret and decode its values.

        Args:
            namespace: The namespace of the secret.
            name: The secret name.

        Returns:
            The Secret with base64-decoded data values.

        Raises:
            ApiException: If the API rejects the request (e.g. not found).
            MaxRetryError: If the cluster is unreachable.

        """
        secret = self.core_api.read_namespaced_secret(name, namespace)
        data = {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}
        ic(namespace, name, list(data))

        return Secret(name=name, namespace=namespace, data=data)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
