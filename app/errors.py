"""
app/errors.py
Domain errors raised by the services and mapped to HTTP responses in main.py.
"""
from typing import Dict, Optional


class ValidationError(Exception):
    """Caller-supplied data failed one or more field rules."""

    def __init__(self, field_errors: Dict[str, str], codes: Optional[Dict[str, str]] = None):
        super().__init__("validation failed: " + ", ".join(sorted(field_errors)))
        self.field_errors = field_errors
        self.codes = codes or {}


class NotFoundError(Exception):
    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} {identifier} not found")
        self.resource = resource
        self.identifier = identifier


class Unauthorized(Exception):
    pass


class StorageError(Exception):
    """Backing store unreachable or rejected the operation."""

    def __init__(self, operation: str, identifier: Optional[str] = None):
        message = f"storage failure during {operation}"
        if identifier:
            message += f" (id={identifier})"
        super().__init__(message)
        self.operation = operation
        self.identifier = identifier


class RelayDeliveryError(Exception):
    """Outbound call to a conversion sink failed. Never leaves the relay."""

    def __init__(self, sink: str, reason: str, status_code: Optional[int] = None, body=None):
        super().__init__(f"{sink}: {reason}")
        self.sink = sink
        self.reason = reason
        self.status_code = status_code
        self.body = body
