"""Certificate management module for loading trusted IdP certificates.

This module loads X.509 certificates from PEM or DER files and from the bare
base64 DER text embedded in SAML metadata and KeyInfo elements. Trust
decisions are left to the caller: whichever certificate is loaded here is the
one the verifier pins.
"""

import base64
import binascii
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from ..models.saml import CertificateInfo
from ..utils.exceptions import CertificateLoadError

logger = logging.getLogger(__name__)

PEM_MARKER = b"-----BEGIN CERTIFICATE-----"


def get_certificate_info(cert: x509.Certificate) -> CertificateInfo:
    """Extract certificate information for display and logging.

    Args:
        cert: X.509 certificate

    Returns:
        CertificateInfo dataclass with certificate details

    Example:
        >>> cert = load_pem_certificate(Path("idp_cert.pem"))
        >>> info = get_certificate_info(cert)
        >>> print(info.subject)
        CN=idp.example.com
    """
    public_key = cert.public_key()
    key_size = public_key.key_size if hasattr(public_key, "key_size") else None

    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        serial_number=cert.serial_number,
        key_size=key_size,
        fingerprint_sha256=cert.fingerprint(hashes.SHA256()).hex(),
    )


def check_expiration_warning(
    cert: x509.Certificate,
    warning_days: int = 30,
    now: Optional[datetime] = None,
) -> bool:
    """Check if certificate is expiring soon and log warning.

    Signature verification does not look at certificate validity dates, so
    an expired IdP certificate only shows up here.

    Args:
        cert: X.509 certificate to check
        warning_days: Number of days before expiration to warn (default: 30)
        now: Reference time (defaults to current UTC time)

    Returns:
        True if certificate expires within warning_days, False otherwise
    """
    now = now or datetime.now(timezone.utc)
    warning_date = now + timedelta(days=warning_days)

    if cert.not_valid_after_utc < warning_date:
        days_remaining = (cert.not_valid_after_utc - now).days
        logger.warning(
            f"Certificate expiring soon: {days_remaining} days remaining "
            f"(expires: {cert.not_valid_after_utc.strftime('%Y-%m-%d')})"
        )
        return True

    return False


def load_pem_certificate(cert_path: Path) -> x509.Certificate:
    """Load X.509 certificate from PEM file.

    Args:
        cert_path: Path to PEM certificate file

    Returns:
        Loaded X.509 certificate

    Raises:
        CertificateLoadError: If certificate cannot be loaded
    """
    cert_data = _read_certificate_file(cert_path)
    try:
        cert = x509.load_pem_x509_certificate(cert_data)
    except ValueError as e:
        raise CertificateLoadError(
            f"Failed to load PEM certificate from {cert_path}: {e}. "
            f"Ensure file is valid PEM format."
        ) from e

    _log_loaded(cert, "PEM")
    return cert


def load_der_certificate(cert_path: Path) -> x509.Certificate:
    """Load X.509 certificate from DER file.

    Args:
        cert_path: Path to DER certificate file

    Returns:
        Loaded X.509 certificate

    Raises:
        CertificateLoadError: If certificate cannot be loaded
    """
    cert_data = _read_certificate_file(cert_path)
    try:
        cert = x509.load_der_x509_certificate(cert_data)
    except ValueError as e:
        raise CertificateLoadError(
            f"Failed to load DER certificate from {cert_path}: {e}. "
            f"Ensure file is valid DER format."
        ) from e

    _log_loaded(cert, "DER")
    return cert


def load_certificate(cert_path: Path) -> x509.Certificate:
    """Load X.509 certificate with auto-detected format.

    Files with a ``.der`` or ``.cer`` suffix that do not contain a PEM marker
    are read as DER; everything else as PEM.

    Args:
        cert_path: Path to certificate file

    Returns:
        Loaded X.509 certificate

    Raises:
        CertificateLoadError: If file missing or format invalid

    Example:
        >>> cert = load_certificate(Path("config/idp.pem"))
    """
    cert_data = _read_certificate_file(cert_path)
    if PEM_MARKER not in cert_data and cert_path.suffix.lower() in (".der", ".cer"):
        return load_der_certificate(cert_path)
    return load_pem_certificate(cert_path)


def load_certificate_from_base64(encoded: str) -> x509.Certificate:
    """Load certificate from base64 DER text as found in ds:X509Certificate.

    Args:
        encoded: Base64 DER text (whitespace allowed)

    Returns:
        Loaded X.509 certificate

    Raises:
        CertificateLoadError: If text is not valid base64 DER certificate
    """
    compact = "".join(encoded.split())
    try:
        der = base64.b64decode(compact, validate=True)
        cert = x509.load_der_x509_certificate(der)
    except (binascii.Error, ValueError) as e:
        raise CertificateLoadError(
            f"Failed to load certificate from base64 data: {e}. "
            f"Ensure X509Certificate element holds base64 DER."
        ) from e

    logger.debug(f"Loaded embedded certificate: {cert.subject.rfc4514_string()}")
    return cert


def certificate_to_pem(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM bytes."""
    return cert.public_bytes(encoding=serialization.Encoding.PEM)


def _read_certificate_file(cert_path: Path) -> bytes:
    if not cert_path.exists():
        raise CertificateLoadError(
            f"Certificate file not found: {cert_path}. "
            f"Ensure the file exists and path is correct."
        )
    try:
        return cert_path.read_bytes()
    except OSError as e:
        raise CertificateLoadError(
            f"Failed to read certificate file {cert_path}: {e}. Check file permissions."
        ) from e


def _log_loaded(cert: x509.Certificate, fmt: str) -> None:
    # Never log the full certificate
    logger.info(f"Loaded {fmt} certificate: {cert.subject.rfc4514_string()}")
    logger.info(f"Certificate expires: {cert.not_valid_after_utc.strftime('%Y-%m-%d')}")
    check_expiration_warning(cert)
