from typing import Dict, List, Optional


class CatalogError(Exception):
    """Base for every error the API turns into an ``{ok: false}`` response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    status_code = 400

    def __init__(self, message: str = "Invalid data", errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.errors = errors or {}


class InvalidFilter(ValidationError):
    pass


class NotFound(CatalogError):
    status_code = 404


class ConstraintViolation(CatalogError):
    status_code = 409

    def __init__(self, message: str, dependents: Optional[int] = None):
        super().__init__(message)
        self.dependents = dependents


class Unauthorized(CatalogError):
    status_code = 401


class Forbidden(CatalogError):
    status_code = 403


class QueryFailed(CatalogError):
    status_code = 500


class MutationFailed(CatalogError):
    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
