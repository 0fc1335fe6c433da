"""Audit trail functionality for the SAML SP Utility.

Verification outcomes are security-relevant: rejected responses, and
especially unsigned or forged ones, must leave a trace operators can search.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Creates a structured audit log entry with standard fields. Audit events
    are logged at INFO level for successful operations and ERROR level for
    failures.

    Args:
        event_type: Type of operation (e.g., "SAML_RESPONSE_VERIFIED",
                   "SAML_RESPONSE_REJECTED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - failure_kind: Verification failure kind (if status is failure)
                - response_id: SAML Response ID
                - issuer: Asserting party
                - error_message: Error details (if status is failure)
                - correlation_id: Optional correlation ID for tracking related events

    Example:
        >>> log_audit_event("SAML_RESPONSE_REJECTED", {
        ...     "status": "failure",
        ...     "failure_kind": "SIGNATURE",
        ...     "error_message": "Signature verification failed"
        ... })
    """
    # Callers may reuse their dict; do not add fields to it
    details = dict(details)
    details.setdefault("timestamp", time.time())
    details.setdefault("correlation_id", str(uuid.uuid4()))

    message_parts = [f"AUDIT [{event_type}]"]

    field_order = [
        "status",
        "failure_kind",
        "response_id",
        "assertion_id",
        "issuer",
        "error_message",
        "correlation_id",
    ]

    for field in field_order:
        if field in details:
            message_parts.append(f"{field}={details[field]}")

    for key, value in details.items():
        if key not in field_order and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    if details.get("status") == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)
