#!/usr/bin/env python
"""Command-line interface for gateway-cert-audit.

This module provides the main CLI entry point: it connects to the cluster,
resolves the namespaces to scan, runs the scanner and prints a summary.
"""

import sys

import click
from icecream import ic

from gateway_cert_audit import __version__, console
from gateway_cert_audit.certificates import Backend, ExpirationAnalyzer
from gateway_cert_audit.cluster import Cluster
from gateway_cert_audit.exceptions import BinaryNotFoundError, ClusterConnectionError, GatewayListingError
from gateway_cert_audit.models import ScanReport
from gateway_cert_audit.scanner import Scanner


def select_namespaces(available: list[str], requested: tuple[str, ...]) -> list[str]:
    """Restrict the eligible namespaces to the requested ones.

    Args:
        available: Namespaces listed from the cluster, exclusions applied.
        requested: Namespaces given on the command line; empty means all.

    Returns:
        The namespaces to scan, in cluster order.

    """
    if not requested:
        return available

    for namespace in requested:
        if namespace not in available:
            console.warning(f"Namespace {console.highlight(namespace)} does not exist or is excluded, skipping")

    return [namespace for namespace in available if namespace in requested]


def print_summary(report: ScanReport) -> None:
    """Print the closing summary panel for a finished scan."""
    console.newline()
    console.summary_panel(
        "Certificate Audit" if report.ok else "Certificate Audit (with errors)",
        {
            "Namespaces": str(report.namespaces),
            "Gateways": str(report.gateways),
            "Certificates": str(len(report.records)),
            "Errors": str(len(report.failures)),
        },
        border_style="green" if report.ok else "yellow",
    )


@click.command(help="Report expiration dates of TLS certificates referenced by Istio gateways")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--select", required=False, is_flag=True, default=False, help="prompt for context select")
@click.option("--context", required=False, help="kubeconfig context to use instead of the current one")
@click.option(
    "--namespace",
    "-n",
    "namespaces",
    required=False,
    multiple=True,
    help="only scan this namespace (can be repeated)",
)
@click.option(
    "--backend",
    type=click.Choice([backend.value for backend in Backend]),
    default=Backend.AUTO.value,
    show_default=True,
    help="how certificate expiration dates are read",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="number of namespaces scanned in parallel",
)
@click.option("--fail-on-errors", required=False, is_flag=True, help="exit with code 2 if any gateway or certificate failed")
def cli(
    debug: bool,
    select: bool,
    context: str | None,
    namespaces: tuple[str, ...],
    backend: str,
    workers: int,
    fail_on_errors: bool,
    version: bool,
) -> None:
    """Process CLI arguments and run the certificate audit.

    Args:
        debug: Enable debug output.
        select: Prompt for Kubernetes context selection.
        context: Explicit Kubernetes context name.
        namespaces: Namespaces to restrict the scan to.
        backend: Certificate parsing backend name.
        workers: Number of namespaces scanned in parallel.
        fail_on_errors: Exit with code 2 when recoverable failures occurred.
        version: Print version and exit.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    if select and context:
        raise click.UsageError("--select and --context are mutually exclusive")

    try:
        analyzer = ExpirationAnalyzer(backend=Backend(backend))
        cluster = Cluster(select_context=select, context=context)

        with console.spinner("Listing namespaces..."):
            eligible = cluster.list_namespaces()
        targets = select_namespaces(eligible, namespaces)
        ic(targets)
        console.info(f"Scanning {console.highlight(str(len(targets)))} namespace(s) for gateway certificates")

        report = Scanner(cluster, analyzer, workers=workers).scan(targets)
    except (BinaryNotFoundError, ClusterConnectionError, GatewayListingError) as e:
        console.error(str(e))
        sys.exit(1)

    print_summary(report)

    if fail_on_errors and not report.ok:
        sys.exit(2)


if __name__ == "__main__":
    cli()
