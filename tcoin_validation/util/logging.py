"""
Structured logging for user validation and oracle callback operations.
"""

import logging
from typing import Any, Dict, List

# Personal data never written to logs in clear
PII_FIELDS = [
    'legal_name', 'legalName', 'date_of_birth', 'dateOfBirth',
    'identity_document', 'documentName', 'identity_document_country', 'countryName',
    'issue_date', 'issueDate', 'issue_place', 'placeName',
    'expirity_date', 'expiryDate', 'token', 'admin_token',
]


class StructuredLogger:
    """Structured logger for API, storage and oracle operations."""

    def __init__(self, name: str = "tcoin_validation"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "rejected"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_user_operation(self, operation: str, user_id: Any, status: str = "success", details: Dict[str, Any] = None):
        """Log a user record operation. Personal data in details is redacted."""
        log_details = {"user_id": user_id}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation(f"user.{operation}", status, log_details)

    def log_request_recorded(self, request_id: str, requester_address: str, nonce: int):
        """Log a new outbound verification request."""
        log_details = {
            "request_id": request_id,
            "requester": requester_address,
            "nonce": nonce
        }
        self.log_operation("oracle.request_recorded", "pending", log_details)

    def log_fulfillment(self, request_id: str, user_id: Any, valid: bool):
        """Log an accepted oracle fulfillment."""
        log_details = {
            "request_id": request_id,
            "user_id": user_id,
            "valid": valid
        }
        self.log_operation("oracle.fulfilled", "accepted", log_details)

    def log_callback_rejected(self, request_id: str, error_type: str, reason: str = ""):
        """Log a rejected oracle callback."""
        log_details = {
            "request_id": request_id,
            "error_type": error_type,
            "reason": reason[:100] if reason else ""  # Limit reason length
        }
        self.log_operation("oracle.callback", "rejected", log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = PII_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload


# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None):
    """General audit event logging with privacy controls."""
    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload)

    logger.log_operation(event_type.replace(".", "_"), "audit", log_details)
