"""
Credential validation for provider API keys

Keeps sensitive values out of logs and error messages. A missing or
unusable key is a fatal startup condition for any network-bound mode.
"""

from typing import List, Optional

from .logger import get_logger

logger = get_logger(__name__, utility="credentials")


class CredentialValidationError(Exception):
    """
    Raised when a required credential is missing or unusable.
    Never exposes sensitive credential data in error messages.
    """

    def __init__(self, message: str, credential_type: str = "credential"):
        self.message = message
        self.credential_type = credential_type
        super().__init__(message)

        logger.warning(f"Credential validation failed for {credential_type}: {message}")


class APIKeyValidator:
    """Validator for API keys"""

    MIN_LENGTH = 8
    MAX_LENGTH = 128

    # Characters that should not appear in API keys
    DANGEROUS_CHARS = ['<', '>', '&', '"', "'", '\n', '\r', '\t', ' ']

    # Common placeholder values copied from .env templates
    WEAK_VALUES = [
        'password', 'test', 'key', 'token', 'api_key', 'apikey', 'secret',
        'changeme', 'your_api_key', 'your-api-key', 'xxx',
    ]

    def __init__(self, provider_name: str = "generic"):
        self.provider_name = provider_name

    @property
    def credential_type(self) -> str:
        return f"api_key_{self.provider_name}"

    def get_validation_errors(self, credential: Optional[str]) -> List[str]:
        """Get validation error messages without exposing credential data"""
        if credential is None or not isinstance(credential, str) or not credential.strip():
            return ["Credential is not set"]

        errors = []
        credential = credential.strip()

        if len(credential) < self.MIN_LENGTH:
            errors.append(f"Credential too short (minimum {self.MIN_LENGTH} characters)")

        if len(credential) > self.MAX_LENGTH:
            errors.append(f"Credential too long (maximum {self.MAX_LENGTH} characters)")

        if any(char in credential for char in self.DANGEROUS_CHARS):
            errors.append("Credential contains invalid characters")

        if credential.lower() in self.WEAK_VALUES:
            errors.append("Credential appears to be a placeholder value")

        return errors

    def validate(self, credential: Optional[str]) -> bool:
        return not self.get_validation_errors(credential)


def mask_credential(credential: Optional[str]) -> str:
    """
    Mask a credential for safe display/logging

    Args:
        credential: The credential to mask

    Returns:
        Masked representation
    """
    if not credential:
        return ""

    length = len(credential)
    if length <= 8:
        return "*" * length
    return f"{credential[:4]}{'*' * (length - 8)}{credential[-4:]}"


def require_api_key(api_key: Optional[str], provider: str, env_var: str) -> str:
    """
    Return the stripped API key or raise CredentialValidationError

    Args:
        api_key: Raw value (usually read from the environment)
        provider: Provider name used in messages
        env_var: Environment variable the key is expected in

    Returns:
        The validated key
    """
    validator = APIKeyValidator(provider)
    errors = validator.get_validation_errors(api_key)
    if errors:
        raise CredentialValidationError(
            f"{env_var} is invalid: {'; '.join(errors)}", validator.credential_type
        )

    key = api_key.strip()
    logger.debug(f"Using {provider} API key {mask_credential(key)}")
    return key
