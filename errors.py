"""
HTTP error taxonomy.

Handlers raise these instead of bare HTTPExceptions so the status code for a
given failure is decided in one place. `main.py` renders every one of them as
``{"message": ...}`` (plus ``errors`` for validation failures).
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException


class ValidationError(HTTPException):
    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(status_code=400, detail=message)
        self.errors = errors or []


class AuthenticationError(HTTPException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(status_code=401, detail=message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(HTTPException):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(status_code=403, detail=message)


class NotFoundError(HTTPException):
    def __init__(self, message: str = "Not found"):
        super().__init__(status_code=404, detail=message)


class ConflictError(HTTPException):
    # Duplicate ratings answer 400; duplicate emails pass 409
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(status_code=status_code, detail=message)


class ServerError(HTTPException):
    def __init__(self, message: str = "Server error"):
        super().__init__(status_code=500, detail=message)
