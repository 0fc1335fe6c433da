"""Entry point for running saml_sp_util as a module.

This allows the package to be executed as:
    python -m saml_sp_util
"""

from saml_sp_util.cli.main import cli

if __name__ == "__main__":
    cli()
