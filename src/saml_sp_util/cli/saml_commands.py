"""SAML CLI commands for response verification and metadata inspection.

This module provides CLI commands for Service Provider testing including:
- saml verify: Verify a base64-encoded SAML Response
- saml metadata: Resolve entity ID, signing certificate and redirect URL
  from IdP metadata
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import click
from cryptography import x509

from saml_sp_util.config.schema import Config
from saml_sp_util.saml import (
    get_certificate_info,
    load_certificate,
    parse_saml_datetime,
    resolve_metadata_xml,
    verify_response,
)
from saml_sp_util.utils.exceptions import (
    DecodingError,
    ErrorCategory,
    SAMLSPError,
    create_error_info,
)

logger = logging.getLogger(__name__)


@click.group(name="saml")
def saml_group() -> None:
    """SAML response verification and IdP metadata commands."""
    pass


@saml_group.command(name="verify")
@click.argument("response_file", type=click.Path(exists=True, path_type=Path))
@click.option("--issuer", type=str, help="Expected assertion Issuer (IdP entity ID)")
@click.option("--recipient", type=str, help="Expected Recipient (default: sp.acs_url)")
@click.option(
    "--cert",
    type=click.Path(exists=True, path_type=Path),
    help="Trusted IdP signing certificate (PEM or DER)",
)
@click.option(
    "--metadata",
    type=click.Path(exists=True, path_type=Path),
    help="IdP metadata XML to take issuer and certificate from",
)
@click.option("--now", "now_str", type=str, help="Reference time, ISO 8601 (default: current time)")
@click.pass_context
def verify(
    ctx: click.Context,
    response_file: Path,
    issuer: Optional[str],
    recipient: Optional[str],
    cert: Optional[Path],
    metadata: Optional[Path],
    now_str: Optional[str],
) -> None:
    """Verify a base64-encoded SAML Response.

    The file holds the SAMLResponse form value as posted to the ACS.
    Options not given fall back to the configuration file, and issuer and
    certificate fall back to IdP metadata.

    Examples:

        # Verify against metadata and configured ACS URL
        saml-sp-util saml verify response.b64 --metadata idp-metadata.xml

        # Verify with explicit values at a fixed time
        saml-sp-util saml verify response.b64 --issuer https://idp.example.com \\
            --cert idp.pem --recipient https://sp.example.com/acs \\
            --now 2020-05-23T01:46:00Z
    """
    config: Optional[Config] = (ctx.obj or {}).get("config")

    try:
        expected_issuer, certificate = _resolve_trust(config, issuer, cert, metadata)
        expected_recipient = recipient or (config.sp.acs_url if config else None)
        if not expected_recipient:
            raise click.UsageError("No recipient given. Use --recipient or set sp.acs_url.")

        now = parse_saml_datetime(now_str) if now_str else datetime.now(timezone.utc)
        encoded = response_file.read_text(encoding="utf-8")

        logger.info(f"Verifying SAML response: {response_file}")
        result = verify_response(encoded, expected_issuer, certificate, expected_recipient, now)
    except SAMLSPError as e:
        _echo_error(e)
        raise click.exceptions.Exit(1)

    if not result.ok:
        click.echo(
            click.style("✗", fg="red", bold=True)
            + f" Response rejected ({result.kind.value})",
            err=True,
        )
        _echo_error(result.error)
        raise click.exceptions.Exit(1)

    assertion = result.response.assertion
    click.echo(click.style("✓", fg="green", bold=True) + " Response verified")
    click.echo(f"\nIssuer:      {assertion.issuer.name}")
    click.echo(f"Subject:     {assertion.subject.name_id.value}")
    click.echo(f"Format:      {assertion.subject.name_id.format or 'N/A'}")
    click.echo(
        f"Recipient:   "
        f"{assertion.subject.subject_confirmation.subject_confirmation_data.recipient}"
    )

    attributes = assertion.attribute_statement.attributes
    if attributes:
        click.echo(click.style("\n=== Attributes ===", bold=True))
        for attribute in attributes:
            click.echo(f"  {attribute.name}: {', '.join(attribute.values)}")


@saml_group.command(name="metadata")
@click.argument("metadata_file", type=click.Path(exists=True, path_type=Path))
def metadata(metadata_file: Path) -> None:
    """Resolve entity ID, signing certificate and redirect URL from IdP metadata.

    Examples:

        saml-sp-util saml metadata idp-metadata.xml
    """
    try:
        resolved = resolve_metadata_xml(metadata_file.read_bytes())
    except SAMLSPError as e:
        _echo_error(e)
        raise click.exceptions.Exit(1)

    info = get_certificate_info(resolved.certificate)
    click.echo(click.style("✓", fg="green", bold=True) + " Metadata resolved")
    click.echo(f"\nEntity ID:    {resolved.entity_id}")
    click.echo(f"Redirect URL: {resolved.redirect_location.geturl()}")
    click.echo(click.style("\n=== Certificate Information ===", bold=True))
    click.echo(f"  Subject:     {info.subject}")
    click.echo(f"  Issuer:      {info.issuer}")
    click.echo(f"  Valid from:  {info.not_before.isoformat()}")
    click.echo(f"  Valid until: {info.not_after.isoformat()}")
    click.echo(f"  SHA-256:     {info.fingerprint_sha256}")


def _resolve_trust(
    config: Optional[Config],
    issuer: Optional[str],
    cert_path: Optional[Path],
    metadata_path: Optional[Path],
) -> Tuple[str, x509.Certificate]:
    """Pick expected issuer and trusted certificate.

    Precedence: CLI options, then configured values, then IdP metadata.

    Raises:
        click.UsageError: If issuer or certificate cannot be determined
        SAMLSPError: If the certificate or metadata cannot be loaded
    """
    idp = config.idp if config else None
    issuer = issuer or (idp.expected_issuer if idp else None)
    cert_path = cert_path or (idp.certificate_path if idp else None)
    metadata_path = metadata_path or (idp.metadata_path if idp else None)

    certificate = load_certificate(cert_path) if cert_path else None

    if (issuer is None or certificate is None) and metadata_path is not None:
        try:
            resolved = resolve_metadata_xml(metadata_path.read_bytes())
        except OSError as e:
            raise click.UsageError(f"Cannot read metadata file {metadata_path}: {e}")
        issuer = issuer or resolved.entity_id
        certificate = certificate or resolved.certificate

    if not issuer:
        raise click.UsageError("No expected issuer. Use --issuer, --metadata or idp.expected_issuer.")
    if certificate is None:
        raise click.UsageError("No trusted certificate. Use --cert, --metadata or idp.certificate_path.")

    return issuer, certificate


def _echo_error(error: Exception) -> None:
    info = create_error_info(error)
    if info.category == ErrorCategory.SECURITY:
        click.echo(click.style("SECURITY: ", fg="red", bold=True) + info.message, err=True)
    elif isinstance(error, DecodingError):
        click.echo(f"Decoding error: {info.message}", err=True)
    else:
        click.echo(f"Error: {info.message}", err=True)
    click.echo(f"Fix: {info.remediation}", err=True)
