"""SAML SP Utility.

Verification of SAML 2.0 Authentication Responses and resolution of
Identity Provider metadata for Service Providers.
"""

__version__ = "0.1.0"
