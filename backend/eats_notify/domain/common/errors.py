"""Domain error types."""
from typing import Optional


class DomainError(Exception):
    """Base domain error."""
    pass


class StoreError(DomainError):
    """Persistence store failure that retrying will not fix."""
    def __init__(self, operation: str, message: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.message = message
        self.cause = cause
        super().__init__(f"{operation}: {message}")


class TransientStoreError(StoreError):
    """Network, timeout or connection failure; safe to retry."""
    pass
