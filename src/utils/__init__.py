# Shared utilities for value-screener

from .core.logger import get_logger, enable_file_logging, shutdown_logging
from .core.credentials import (
    APIKeyValidator, CredentialValidationError, mask_credential, require_api_key
)
