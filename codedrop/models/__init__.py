from .reference import (
    FileReference,
    FileInfo,
    RegisterRequest,
    RegisterResponse,
    ValidateRequest,
    ValidateResponse,
)

__all__ = [
    # Reference
    "FileReference",
    "FileInfo",
    # Register
    "RegisterRequest",
    "RegisterResponse",
    # Validate
    "ValidateRequest",
    "ValidateResponse",
]
