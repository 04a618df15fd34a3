"""
Lambda Error Handler

Error taxonomy and response checking for the file index initializer:
1. Custom exception classes for each failure category of a notification
2. Document API response checking (requests responses)
3. A helper that verifies required environment variables

Usage:
    from lambda_error_handler import (
        ApiError,
        AuthenticationError,
        ResourceNotFoundError,
        handle_api_response,
    )

    response = session.get(url, headers=headers)
    document = handle_api_response(response, "WFDM", "documents")
"""

import os
from typing import Any, Dict, List, Optional

from aws_lambda_powertools import Logger

logger = Logger()

# ─────────────────────────────────────────────────────────────────────────────
# Custom Exception Classes
# ─────────────────────────────────────────────────────────────────────────────


class LambdaError(Exception):
    """Base class for all Lambda errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ApiError(LambdaError):
    """Error for handling document API response errors"""

    def __init__(
        self,
        message: str,
        status_code: int,
        api_name: str,
        endpoint: str,
        response: Any,
    ):
        details = {
            "status_code": status_code,
            "api_name": api_name,
            "endpoint": endpoint,
            "response": response,
        }
        super().__init__(message, details)
        self.status_code = status_code
        self.api_name = api_name
        self.endpoint = endpoint
        self.response = response


class AuthenticationError(LambdaError):
    """Raised when an access token cannot be issued"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, {"status_code": status_code})
        self.status_code = status_code


class ResourceNotFoundError(LambdaError):
    """Raised when a file or bucket the notification depends on is absent"""

    def __init__(self, message: str, resource_type: str, resource_id: str):
        details = {"resource_type": resource_type, "resource_id": resource_id}
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class NotificationValidationError(LambdaError):
    """Error for a queue message that cannot be parsed into a notification"""

    def __init__(self, message: str, field: str, value: Any = None):
        details = {"field": field, "value": value}
        super().__init__(message, details)
        self.field = field
        self.value = value


class MetadataUpdateError(LambdaError):
    """Raised under the fail-fast policy when the scan metadata write is rejected"""

    def __init__(self, file_id: str, version_number: str):
        super().__init__(
            f"Could not set virus scan metadata for {file_id} version {version_number}",
            {"file_id": file_id, "version_number": version_number},
        )


class ConfigurationError(LambdaError):
    """Error for handling configuration issues"""

    def __init__(self, message: str, missing_configs: List[str]):
        details = {"missing_configs": missing_configs}
        super().__init__(message, details)
        self.missing_configs = missing_configs


# ─────────────────────────────────────────────────────────────────────────────
# Response Status Checking
# ─────────────────────────────────────────────────────────────────────────────


def handle_api_response(
    response: Any, api_name: str, endpoint: str = "", success_codes: List[int] = None
) -> Dict[str, Any]:
    """
    Handle a requests response, checking the status code and returning the parsed JSON.

    Args:
        response: The requests.Response to check
        api_name: The name of the API
        endpoint: The API endpoint that was called
        success_codes: Status codes considered successful (default: 200, 201, 202, 204)

    Returns:
        The parsed JSON body, or {} for an empty successful body

    Raises:
        ApiError: If the status code is not in success_codes, or a successful
            body is not valid JSON
    """
    success_codes = success_codes or [200, 201, 202, 204]
    status_code = response.status_code

    if status_code not in success_codes:
        logger.error(
            f"{api_name} API call to {endpoint} failed",
            extra={
                "status_code": status_code,
                "api_name": api_name,
                "endpoint": endpoint,
                "response": response.text,
            },
        )
        raise ApiError(
            message=f"{api_name} API call to {endpoint} failed (status: {status_code})",
            status_code=status_code,
            api_name=api_name,
            endpoint=endpoint,
            response=response.text,
        )

    if not response.content:
        return {}

    try:
        return response.json()
    except ValueError:
        raise ApiError(
            message=f"{api_name} API call to {endpoint} returned a malformed body",
            status_code=status_code,
            api_name=api_name,
            endpoint=endpoint,
            response=response.text,
        )


def check_required_env_vars(required_vars: List[str]) -> None:
    """
    Check if all required environment variables are set.

    Args:
        required_vars: List of required environment variable names

    Raises:
        ConfigurationError: If any required variables are missing
    """
    missing = [var for var in required_vars if not os.getenv(var)]

    if missing:
        raise ConfigurationError(
            message=f"Missing required environment variables: {', '.join(missing)}",
            missing_configs=missing,
        )
