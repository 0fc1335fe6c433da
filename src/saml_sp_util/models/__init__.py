"""Models module.

This module provides data models and dataclasses for the application.
"""

from saml_sp_util.models.saml import (
    Assertion,
    Attribute,
    AttributeStatement,
    CertificateInfo,
    Conditions,
    EntityDescriptor,
    Issuer,
    KeyDescriptor,
    NameID,
    ResolvedMetadata,
    Response,
    Signature,
    SingleSignOnService,
    Subject,
    SubjectConfirmation,
    SubjectConfirmationData,
    VerificationResult,
)

__all__ = [
    "Assertion",
    "Attribute",
    "AttributeStatement",
    "CertificateInfo",
    "Conditions",
    "EntityDescriptor",
    "Issuer",
    "KeyDescriptor",
    "NameID",
    "ResolvedMetadata",
    "Response",
    "Signature",
    "SingleSignOnService",
    "Subject",
    "SubjectConfirmation",
    "SubjectConfirmationData",
    "VerificationResult",
]
