"""Certificate decoding and expiration analysis.

decode_certificate turns the ``tls.crt`` value of a secret into DER bytes,
and ExpirationAnalyzer reads the not-after date from those bytes, either
through the openssl binary or natively with the cryptography library.
"""

import base64
import binascii
import shutil
import subprocess
from collections.abc import Mapping
from datetime import datetime
from enum import Enum

from cryptography import x509
from icecream import ic

from gateway_cert_audit import console
from gateway_cert_audit.exceptions import AnalysisError, BinaryNotFoundError, DecodeError

TLS_CERT_KEY = "tls.crt"
PEM_HEADER = b"-----BEGIN CERTIFICATE-----\n"
PEM_FOOTER = b"\n-----END CERTIFICATE-----"
NOT_AFTER_PREFIX = "notAfter="


class Backend(str, Enum):
    """Ways of reading the expiration date of a certificate."""

    AUTO = "auto"
    OPENSSL = "openssl"
    NATIVE = "native"


def decode_certificate(data: Mapping[str, bytes]) -> bytes:
    """Extract the DER bytes of the certificate stored under ``tls.crt``.

    Only the literal PEM header and footer lines are removed. Line breaks are
    ignored and the rest must be valid standard base64.

    Args:
        data: Decoded secret data.

    Returns:
        The raw DER certificate bytes.

    Raises:
        DecodeError: If ``tls.crt`` is missing or its body is not valid base64.

    """
    try:
        pem = data[TLS_CERT_KEY]
    except KeyError:
        raise DecodeError(f"{TLS_CERT_KEY} not found in secret") from None

    body = pem.replace(PEM_HEADER, b"").replace(PEM_FOOTER, b"")
    body = body.replace(b"\r", b"").replace(b"\n", b"")

    try:
        return base64.b64decode(body, validate=True)
    except binascii.Error as err:
        raise DecodeError(f"error decoding certificate data: {err}") from err


def format_not_after(timestamp: datetime) -> str:
    """Render a UTC timestamp the way ``openssl x509 -enddate`` does.

    Args:
        timestamp: The not-after instant, in UTC.

    Returns:
        Text such as ``Jan  1 00:00:00 2030 GMT``.

    """
    return f"{timestamp:%b} {timestamp.day:2d} {timestamp:%H:%M:%S %Y} GMT"


class ExpirationAnalyzer:
    """Reads the not-after date of DER encoded certificates.

    Attributes:
        backend: The resolved backend, never Backend.AUTO.
        binary: Path to the openssl binary when the openssl backend is used.

    """

    def __init__(self, backend: Backend = Backend.AUTO) -> None:
        """Resolve the backend to use.

        Args:
            backend: Requested backend. AUTO prefers openssl and falls back
                to native parsing when openssl is not in PATH.

        Raises:
            BinaryNotFoundError: If openssl was requested but is not in PATH.

        """
        self.binary: str | None = None
        self.backend: Backend = Backend.NATIVE

        if backend is Backend.NATIVE:
            return

        self.binary = shutil.which("openssl")
        if self.binary is not None:
            self.backend = Backend.OPENSSL
        elif backend is Backend.OPENSSL:
            raise BinaryNotFoundError("openssl binary not found. Please install openssl or ensure it's in your PATH.")
        else:
            console.warning("openssl not found in PATH, falling back to native certificate parsing")

        ic(self.backend, self.binary)

    def analyze(self, certificate: bytes) -> str:
        """Return the expiration date of a certificate as opaque text.

        Args:
            certificate: Raw DER certificate bytes.

        Returns:
            The not-after date, e.g. ``Jan  1 00:00:00 2030 GMT``.

        Raises:
            AnalysisError: If the date cannot be read.

        """
        if self.backend is Backend.OPENSSL:
            expiry = self._analyze_with_openssl(certificate)
        else:
            expiry = self._analyze_natively(certificate)

        if not expiry:
            raise AnalysisError("no expiration date found in certificate")
        return expiry

    def _analyze_with_openssl(self, certificate: bytes) -> str:
        cmd: list[str] = [str(self.binary), "x509", "-inform", "DER", "-noout", "-enddate"]
        ic(cmd)

        try:
            completed = subprocess.run(
                cmd,
                input=certificate,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=True,
            )
        except subprocess.CalledProcessError as err:
            output = (err.output or b"").decode(errors="replace").strip()
            raise AnalysisError(f"openssl error: {output or f'exit code {err.returncode}'}") from err
        except OSError as err:
            raise AnalysisError(f"openssl error: {err}") from err

        return completed.stdout.decode(errors="replace").removeprefix(NOT_AFTER_PREFIX).strip()

    @staticmethod
    def _analyze_natively(certificate: bytes) -> str:
        try:
            cert = x509.load_der_x509_certificate(certificate)
        except ValueError as err:
            raise AnalysisError(f"error parsing certificate: {err}") from err

        return format_not_after(cert.not_valid_after_utc)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"ExpirationAnalyzer(backend={self.backend.value!r}, binary={self.binary!r})"
