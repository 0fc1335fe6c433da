"""Decoding of SAML responses and IdP metadata into the data model.

This module maps SAML 2.0 XML onto the frozen dataclasses in
``saml_sp_util.models.saml``. Decoding is permissive: elements or attributes
missing from the document become zero values, and only malformed base64,
malformed XML, a wrong root element or an unparseable timestamp are
decoding errors. Enforcing required content is the verifier's job.
"""

import base64
import binascii
import logging
import re
from datetime import datetime, timezone
from typing import Optional, Union

from lxml import etree

from ..models.saml import (
    Assertion,
    Attribute,
    AttributeStatement,
    Conditions,
    EntityDescriptor,
    Issuer,
    KeyDescriptor,
    NameID,
    Response,
    Signature,
    SingleSignOnService,
    Subject,
    SubjectConfirmation,
    SubjectConfirmationData,
)
from ..utils.exceptions import DecodingError

logger = logging.getLogger(__name__)

# SAML 2.0 and XML Signature namespaces
SAMLP_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
SAML_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
MD_NS = "urn:oasis:names:tc:SAML:2.0:metadata"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"

NS = {"samlp": SAMLP_NS, "saml": SAML_NS, "md": MD_NS, "ds": DS_NS}

# No DTD entity expansion, no network fetches
_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)

# xs:dateTime lexical form: extended date, "T", time, optional fraction and offset
_XS_DATETIME = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?"
)


def parse_xml(xml_bytes: bytes) -> etree._Element:
    """Parse XML bytes into an lxml element with a hardened parser.

    Args:
        xml_bytes: Raw XML document

    Returns:
        Root element

    Raises:
        DecodingError: If the XML is not well-formed
    """
    try:
        return etree.fromstring(xml_bytes, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise DecodingError(f"Malformed XML: {e}") from e


def decode_base64(encoded: Union[str, bytes]) -> bytes:
    """Decode a base64 payload as delivered by the HTTP-POST binding.

    Whitespace (line wrapping) is ignored; any other non-alphabet character
    is an error.

    Raises:
        DecodingError: If the payload is not valid base64
    """
    if isinstance(encoded, str):
        try:
            encoded = encoded.encode("ascii")
        except UnicodeEncodeError as e:
            raise DecodingError(f"Malformed base64: {e}") from e

    compact = b"".join(encoded.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodingError(f"Malformed base64: {e}") from e


def decode_response(encoded_response: Union[str, bytes]) -> Response:
    """Base64-decode and parse a SAML Response.

    Args:
        encoded_response: Base64-encoded Response document

    Returns:
        Decoded Response; ``signature`` is None when the document is unsigned

    Raises:
        DecodingError: Malformed base64/XML, wrong root element or bad timestamp
    """
    root = parse_xml(decode_base64(encoded_response))
    return decode_response_element(root)


def decode_response_element(root: etree._Element) -> Response:
    """Decode a parsed samlp:Response element.

    Raises:
        DecodingError: If ``root`` is not a samlp:Response or has a bad timestamp
    """
    if root.tag != f"{{{SAMLP_NS}}}Response":
        raise DecodingError(
            f"Expected root element {{{SAMLP_NS}}}Response, got {root.tag}"
        )

    assertion_elem = root.find("saml:Assertion", NS)
    assertion = decode_assertion_element(assertion_elem)

    # A response-level signature covers the whole response; otherwise an
    # assertion-level signature covers only the assertion.
    signature = None
    sig_elem = root.find("ds:Signature", NS)
    if sig_elem is not None:
        signature = Signature(element=sig_elem, signed_element=root)
    elif assertion_elem is not None:
        sig_elem = assertion_elem.find("ds:Signature", NS)
        if sig_elem is not None:
            signature = Signature(element=sig_elem, signed_element=assertion_elem)

    response = Response(
        assertion=assertion,
        signature=signature,
        response_id=root.get("ID", ""),
        destination=root.get("Destination", ""),
        issue_instant=_datetime_attr(root, "IssueInstant"),
    )
    logger.debug(
        f"Decoded Response: ID={response.response_id!r}, "
        f"signed={'yes' if signature else 'no'}, "
        f"attributes={len(assertion.attribute_statement.attributes)}"
    )
    return response


def decode_assertion_element(element: Optional[etree._Element]) -> Assertion:
    """Decode a saml:Assertion element, or return the zero Assertion for None."""
    if element is None:
        return Assertion()

    return Assertion(
        assertion_id=element.get("ID", ""),
        issuer=Issuer(name=_text(element.find("saml:Issuer", NS))),
        subject=_decode_subject(element.find("saml:Subject", NS)),
        conditions=_decode_conditions(element.find("saml:Conditions", NS)),
        attribute_statement=_decode_attribute_statement(
            element.find("saml:AttributeStatement", NS)
        ),
    )


def _decode_subject(element: Optional[etree._Element]) -> Subject:
    if element is None:
        return Subject()

    name_id_elem = element.find("saml:NameID", NS)
    name_id = NameID()
    if name_id_elem is not None:
        name_id = NameID(format=name_id_elem.get("Format", ""), value=_text(name_id_elem))

    confirmation = SubjectConfirmation()
    confirmation_elem = element.find("saml:SubjectConfirmation", NS)
    if confirmation_elem is not None:
        data = SubjectConfirmationData()
        data_elem = confirmation_elem.find("saml:SubjectConfirmationData", NS)
        if data_elem is not None:
            data = SubjectConfirmationData(
                recipient=data_elem.get("Recipient", ""),
                not_on_or_after=_datetime_attr(data_elem, "NotOnOrAfter"),
            )
        confirmation = SubjectConfirmation(
            method=confirmation_elem.get("Method", ""),
            subject_confirmation_data=data,
        )

    return Subject(name_id=name_id, subject_confirmation=confirmation)


def _decode_conditions(element: Optional[etree._Element]) -> Conditions:
    if element is None:
        return Conditions()
    return Conditions(
        not_before=_datetime_attr(element, "NotBefore"),
        not_on_or_after=_datetime_attr(element, "NotOnOrAfter"),
    )


def _decode_attribute_statement(element: Optional[etree._Element]) -> AttributeStatement:
    if element is None:
        return AttributeStatement()

    attributes = tuple(
        Attribute(
            name=attr_elem.get("Name", ""),
            name_format=attr_elem.get("NameFormat", ""),
            values=tuple(
                _text(value_elem)
                for value_elem in attr_elem.findall("saml:AttributeValue", NS)
            ),
        )
        for attr_elem in element.findall("saml:Attribute", NS)
    )
    return AttributeStatement(attributes=attributes)


def decode_entity_descriptor(xml_bytes: bytes) -> EntityDescriptor:
    """Parse IdP metadata into an EntityDescriptor.

    KeyDescriptors and SingleSignOnService entries are collected from every
    IDPSSODescriptor in document order.

    Args:
        xml_bytes: Raw md:EntityDescriptor XML

    Returns:
        Decoded EntityDescriptor

    Raises:
        DecodingError: If the XML is malformed or the root is not an EntityDescriptor

    Example:
        >>> metadata = decode_entity_descriptor(Path("idp.xml").read_bytes())
        >>> metadata.entity_id
        'https://example.com'
    """
    root = parse_xml(xml_bytes)
    if root.tag != f"{{{MD_NS}}}EntityDescriptor":
        raise DecodingError(
            f"Expected root element {{{MD_NS}}}EntityDescriptor, got {root.tag}"
        )

    key_descriptors = []
    sso_services = []
    for idp_elem in root.findall("md:IDPSSODescriptor", NS):
        for kd_elem in idp_elem.findall("md:KeyDescriptor", NS):
            cert_elem = kd_elem.find("ds:KeyInfo/ds:X509Data/ds:X509Certificate", NS)
            key_descriptors.append(
                KeyDescriptor(
                    use=kd_elem.get("use", ""),
                    certificate="".join(_text(cert_elem).split()),
                )
            )
        for sso_elem in idp_elem.findall("md:SingleSignOnService", NS):
            sso_services.append(
                SingleSignOnService(
                    binding=sso_elem.get("Binding", ""),
                    location=sso_elem.get("Location", ""),
                )
            )

    descriptor = EntityDescriptor(
        entity_id=root.get("entityID", ""),
        key_descriptors=tuple(key_descriptors),
        single_sign_on_services=tuple(sso_services),
    )
    logger.debug(
        f"Decoded EntityDescriptor {descriptor.entity_id!r}: "
        f"{len(key_descriptors)} key descriptor(s), {len(sso_services)} SSO service(s)"
    )
    return descriptor


def parse_saml_datetime(value: str) -> datetime:
    """Parse an xs:dateTime value into an aware UTC datetime.

    Values without an offset are UTC, as SAML 2.0 requires.

    Raises:
        DecodingError: If the value is not in xs:dateTime lexical form
    """
    text = value.strip()
    # fromisoformat alone also accepts date-only and basic-format values
    if not _XS_DATETIME.fullmatch(text):
        raise DecodingError(f"Invalid SAML timestamp {value!r}: not an xs:dateTime")

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise DecodingError(f"Invalid SAML timestamp {value!r}: {e}") from e

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _datetime_attr(element: etree._Element, name: str) -> Optional[datetime]:
    value = element.get(name)
    if not value:
        return None
    return parse_saml_datetime(value)


def _text(element: Optional[etree._Element]) -> str:
    """Character data of an element, joining text split by comments."""
    if element is None:
        return ""
    parts = [element.text or ""]
    for child in element:
        # Comments and processing instructions have non-string tags
        if not isinstance(child.tag, str):
            parts.append(child.tail or "")
    return "".join(parts)
