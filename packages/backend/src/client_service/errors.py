"""Domain error taxonomy.

Learn: Services raise these instead of HTTPException so the same logic
can be driven from HTTP routes, the CLI or tests. main.py registers one
exception handler for the base class that renders `{"error": ...}` with
the class's status code.

- ValidationError → 400 (rejected before any store call)
- NotFoundError   → 404 (lookup-only operations)
- ConflictError   → 409 (uniqueness violation outside the upsert path)
- ProviderError   → 502 (identity provider unreachable or refused)
- StoreError      → 500 (connectivity/transaction failure, safe to retry)
"""

from typing import Optional


class ClientServiceError(Exception):
    """Base class. Carries the HTTP status the API layer should use."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(ClientServiceError):
    """A required field is missing or malformed."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.field:
            body["details"] = {"field": self.field}
        return body


class NotFoundError(ClientServiceError):
    status_code = 404


class ConflictError(ClientServiceError):
    status_code = 409


class ProviderError(ClientServiceError):
    status_code = 502


class StoreError(ClientServiceError):
    """The store failed mid-operation. The transaction was rolled back."""

    status_code = 500
