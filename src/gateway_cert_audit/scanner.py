"""Namespace and gateway walker.

The Scanner lists the gateways of every namespace, collects the secrets
each gateway terminates TLS with, and reads the expiration date of every
certificate found. Gateway listing failures abort the scan; failures
scoped to one gateway or one secret are reported and skipped.
"""

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from icecream import ic

from gateway_cert_audit import console
from gateway_cert_audit.certificates import ExpirationAnalyzer, decode_certificate
from gateway_cert_audit.cluster import Cluster
from gateway_cert_audit.exceptions import AnalysisError, DecodeError, ExtractionError, GatewayListingError
from gateway_cert_audit.extractor import extract_secrets
from gateway_cert_audit.models import Gateway, ResultRecord, ScanFailure, ScanReport

RecordHandler = Callable[[ResultRecord], None]
FailureHandler = Callable[[ScanFailure], None]


def print_record(record: ResultRecord) -> None:
    """Print a report line for a result record."""
    console.result(record.line())


def print_failure(failure: ScanFailure) -> None:
    """Print a diagnostic line for a recoverable failure."""
    console.warning(failure.line())


@dataclass(slots=True)
class _NamespaceOutcome:
    """Buffered results of one namespace scanned by a worker thread."""

    gateways: int = 0
    records: list[ResultRecord] = field(default_factory=list)
    failures: list[ScanFailure] = field(default_factory=list)


class Scanner:
    """Walks namespaces, gateways and secrets to report certificate expirations.

    Attributes:
        cluster: Cluster used to list gateways and fetch secrets.
        analyzer: ExpirationAnalyzer used to read certificate dates.
        workers: Number of namespaces scanned in parallel; 1 means sequential.
        on_record: Called once per successfully analyzed certificate.
        on_failure: Called once per recoverable failure.

    """

    def __init__(
        self,
        cluster: Cluster,
        analyzer: ExpirationAnalyzer,
        *,
        workers: int = 1,
        on_record: RecordHandler = print_record,
        on_failure: FailureHandler = print_failure,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.cluster = cluster
        self.analyzer = analyzer
        self.workers = workers
        self.on_record = on_record
        self.on_failure = on_failure

    def scan(self, namespaces: Iterable[str]) -> ScanReport:
        """Scan the given namespaces.

        Records and failures are emitted in namespace order as soon as they
        are known (with several workers, as soon as every earlier namespace
        has been emitted).

        Args:
            namespaces: Eligible namespace names, already filtered.

        Returns:
            The ScanReport of everything emitted.

        Raises:
            GatewayListingError: If the gateways of a namespace cannot be
                listed. Nothing is emitted for later namespaces.

        """
        report = ScanReport()

        def record(item: ResultRecord) -> None:
            report.records.append(item)
            self.on_record(item)

        def failure(item: ScanFailure) -> None:
            report.failures.append(item)
            self.on_failure(item)

        if self.workers == 1:
            for namespace in namespaces:
                report.gateways += self._scan_namespace(namespace, record, failure)
                report.namespaces += 1
            return report

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self._scan_namespace_buffered, namespace) for namespace in namespaces]
            try:
                for future in futures:
                    outcome = future.result()
                    for item in outcome.records:
                        record(item)
                    for item in outcome.failures:
                        failure(item)
                    report.gateways += outcome.gateways
                    report.namespaces += 1
            except GatewayListingError:
                for future in futures:
                    future.cancel()
                raise

        return report

    def _scan_namespace_buffered(self, namespace: str) -> _NamespaceOutcome:
        outcome = _NamespaceOutcome()
        outcome.gateways = self._scan_namespace(namespace, outcome.records.append, outcome.failures.append)
        return outcome

    def _scan_namespace(self, namespace: str, record: RecordHandler, failure: FailureHandler) -> int:
        """Scan every gateway of a namespace.

        Returns:
            The number of gateways found.

        Raises:
            GatewayListingError: If the gateways cannot be listed.

        """
        gateways = self.cluster.list_gateways(namespace)
        ic(namespace, len(gateways))

        for gateway in gateways:
            self._scan_gateway(gateway, record, failure)

        return len(gateways)

    def _scan_gateway(self, gateway: Gateway, record: RecordHandler, failure: FailureHandler) -> None:
        try:
            secrets = extract_secrets(gateway, self.cluster)
        except ExtractionError as e:
            failure(ScanFailure(namespace=gateway.namespace, gateway=gateway.name, reason=str(e)))
            return

        for secret in secrets:
            try:
                expiry = self.analyzer.analyze(decode_certificate(secret.data))
            except (DecodeError, AnalysisError) as e:
                failure(
                    ScanFailure(
                        namespace=gateway.namespace,
                        gateway=gateway.name,
                        reason=str(e),
                        secret=secret.name,
                    )
                )
                continue

            record(
                ResultRecord(
                    namespace=gateway.namespace,
                    gateway=gateway.name,
                    secret=secret.name,
                    expiration=expiry,
                )
            )

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Scanner(cluster={self.cluster!r}, analyzer={self.analyzer!r}, workers={self.workers!r})"
