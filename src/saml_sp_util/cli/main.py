"""Main CLI entry point for SAML SP Utility.

This module provides the main Click command group for the saml-sp-util CLI.
"""

from pathlib import Path
from typing import Optional

import click

from saml_sp_util import __version__
from saml_sp_util.cli.saml_commands import saml_group
from saml_sp_util.config import load_config
from saml_sp_util.logging_audit import configure_logging
from saml_sp_util.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="saml-sp-util")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-pii",
    is_flag=True,
    help="Redact PII (NameIDs, email addresses) from logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_pii: bool,
) -> None:
    """SAML SP Utility - SAML 2.0 response verification for Service Providers.

    Verifies signed SAML Responses from an Identity Provider and reads the
    signing certificate and redirect endpoint from IdP metadata.

    Common usage:

        # Inspect IdP metadata
        saml-sp-util saml metadata idp-metadata.xml

        # Verify a SAMLResponse against the IdP metadata
        saml-sp-util saml verify response.b64 --metadata idp-metadata.xml

        # Use custom configuration file
        saml-sp-util --config custom/config.json saml verify response.b64

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["redact_pii"] = redact_pii
    ctx.obj["log_file"] = log_file

    # Precedence: CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact_pii_setting = redact_pii if redact_pii else config_obj.logging.redact_pii

    configure_logging(
        level=log_level, log_file=log_file_path, redact_pii=redact_pii_setting
    )


cli.add_command(saml_group)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        saml-sp-util config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")
    click.echo("\nService Provider:")
    click.echo(f"  Entity ID:   {config_obj.sp.entity_id}")
    click.echo(f"  ACS URL:     {config_obj.sp.acs_url}")

    click.echo("\nIdentity Provider:")
    click.echo(f"  Issuer:      {config_obj.idp.expected_issuer or 'Not configured'}")
    click.echo(f"  Cert path:   {config_obj.idp.certificate_path or 'Not configured'}")
    click.echo(f"  Metadata:    {config_obj.idp.metadata_path or 'Not configured'}")

    click.echo("\nLogging:")
    click.echo(f"  Level:       {config_obj.logging.level}")
    click.echo(f"  Log file:    {config_obj.logging.log_file}")
    click.echo(f"  Redact PII:  {config_obj.logging.redact_pii}")


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"saml-sp-util version {__version__}")


if __name__ == "__main__":
    cli()
