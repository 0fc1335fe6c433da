"""Command line interface for the SAML SP Utility."""
