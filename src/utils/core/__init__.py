# Core utilities package
# Contains foundational infrastructure utilities for the application

__all__ = [
    "get_logger",
    "enable_file_logging",
    "shutdown_logging",
    "APIKeyValidator",
    "CredentialValidationError",
    "mask_credential",
    "require_api_key",
]

from .logger import get_logger, enable_file_logging, shutdown_logging
from .credentials import APIKeyValidator, CredentialValidationError, mask_credential, require_api_key
