"""
Errors raised by the store, the assignment manager and the progress tracker.

The HTTP layer in main.py maps each kind to a status code.
"""

from typing import Any, Dict, List, Optional


class MentorBuddyError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(MentorBuddyError):
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity.capitalize()} not found")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateEmail(MentorBuddyError):
    status_code = 409

    def __init__(self, email: str):
        super().__init__("Email already exists")
        self.email = email


class ValidationError(MentorBuddyError):
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


def format_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten pydantic error dicts into ``{"field", "message"}`` pairs."""
    formatted = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        formatted.append({"field": ".".join(loc) or None, "message": err.get("msg", "Invalid value")})
    return formatted
