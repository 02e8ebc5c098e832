"""
Error taxonomy and mapping for advertising platform operations.

Provides typed errors for both platforms and translates SDK exceptions
(Google Ads gRPC, Microsoft Advertising SOAP) into them.
"""

from enum import Enum
from typing import Optional, Dict, Any, List
from dataclasses import dataclass

import grpc
from google.ads.googleads.errors import GoogleAdsException
from google.auth.exceptions import RefreshError
from bingads.exceptions import OAuthTokenRequestException
from suds import WebFault
from suds.transport import TransportError


class ErrorCategory(str, Enum):
    """Error category classification."""

    AUTHENTICATION = "authentication"
    TRANSPORT = "transport"
    API_OPERATION = "api_operation"
    VALIDATION = "validation"
    UNSUPPORTED = "unsupported"


@dataclass
class ErrorDetail:
    """Detailed error information."""

    category: ErrorCategory
    code: str
    message: str
    http_status: int
    retryable: bool
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        result = {
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            result["details"] = self.details
        return result


class AdsAPIError(Exception):
    """Base exception for all advertising platform errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        code: str,
        http_status: int = 500,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.error_detail = ErrorDetail(
            category=category,
            code=code,
            message=message,
            http_status=http_status,
            retryable=retryable,
            details=details or {}
        )


class AuthenticationError(AdsAPIError):
    """Session or credential acquisition failed."""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            code="AUTH_FAILED",
            http_status=401,
            retryable=False,
            details=details
        )


class TransportFault(AdsAPIError):
    """Network or protocol level failure of a query or mutate call."""

    def __init__(
        self,
        message: str,
        platform: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if platform:
            error_details["platform"] = platform

        super().__init__(
            message=message,
            category=ErrorCategory.TRANSPORT,
            code="TRANSPORT_FAULT",
            http_status=502,
            retryable=False,
            details=error_details
        )


class ApiOperationError(AdsAPIError):
    """The platform accepted the request but reported operation errors."""

    def __init__(
        self,
        message: str = "Platform rejected the operation",
        errors: Optional[List[Dict[str, Any]]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.errors = list(errors or [])
        error_details = details or {}
        if self.errors:
            error_details["errors"] = self.errors

        super().__init__(
            message=message,
            category=ErrorCategory.API_OPERATION,
            code="API_OPERATION_FAILED",
            http_status=422,
            retryable=False,
            details=error_details
        )


class ValidationError(AdsAPIError):
    """Request validation failed."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            code="VALIDATION_ERROR",
            http_status=400,
            retryable=False,
            details=details
        )


class UnsupportedOperationError(AdsAPIError):
    """Operation is not offered by the target platform."""

    def __init__(self, message: str = "Operation not supported", platform: Optional[str] = None):
        details = {"platform": platform} if platform else None
        super().__init__(
            message=message,
            category=ErrorCategory.UNSUPPORTED,
            code="UNSUPPORTED_OPERATION",
            http_status=501,
            retryable=False,
            details=details
        )


# Google Ads error code families that indicate a credential problem
GOOGLE_ADS_AUTH_ERROR_FIELDS = (
    "authentication_error",
    "authorization_error",
)


def _google_ads_error_entries(exception: GoogleAdsException) -> List[Dict[str, Any]]:
    """Flatten the GoogleAdsFailure payload into plain dictionaries."""
    entries = []
    for error in exception.failure.errors:
        code_field = error.error_code._pb.WhichOneof("error_code")
        code_value = getattr(error.error_code, code_field).name if code_field else "UNKNOWN"
        entries.append({
            "error_type": code_field or "unknown",
            "error_code": code_value,
            "message": error.message,
        })
    return entries


def map_google_ads_exception(exception: Exception) -> AdsAPIError:
    """
    Map Google Ads SDK exception to our typed error.

    Args:
        exception: Exception raised by the Google Ads client library

    Returns:
        Mapped AdsAPIError instance
    """
    if isinstance(exception, GoogleAdsException):
        errors = _google_ads_error_entries(exception)
        message = "; ".join(entry["message"] for entry in errors) or str(exception)
        if any(entry["error_type"] in GOOGLE_ADS_AUTH_ERROR_FIELDS for entry in errors):
            return AuthenticationError(message, details={"errors": errors})
        return ApiOperationError(
            message,
            errors=errors,
            details={"request_id": exception.request_id},
        )

    if isinstance(exception, RefreshError):
        return AuthenticationError(f"Google Ads token refresh failed: {exception}")

    if isinstance(exception, grpc.RpcError):
        code = exception.code() if callable(getattr(exception, "code", None)) else None
        return TransportFault(
            f"Google Ads transport error: {exception}",
            platform="google_ads",
            details={"grpc_status": code.name} if code is not None else None,
        )

    return TransportFault(f"Google Ads transport error: {exception}", platform="google_ads")


def _soap_operation_errors(container: Any) -> List[Any]:
    """Unwrap a SOAP ArrayOfOperationError into a plain list."""
    if container is None:
        return []
    items = getattr(container, "OperationError", None)
    if items is None:
        return list(container) if isinstance(container, list) else []
    return list(items)


def microsoft_operation_errors(response: Any) -> List[Dict[str, Any]]:
    """
    Collect OperationErrors and PartialErrors from a Customer Management response.

    Args:
        response: SOAP response object

    Returns:
        List of error dictionaries (empty when the operation succeeded)
    """
    errors = []
    for error in _soap_operation_errors(getattr(response, "OperationErrors", None)):
        errors.append({
            "error_code": getattr(error, "ErrorCode", None),
            "code": getattr(error, "Code", None),
            "message": getattr(error, "Message", None),
        })

    partial = getattr(response, "PartialErrors", None)
    for group in getattr(partial, "ArrayOfOperationError", None) or []:
        for error in _soap_operation_errors(group):
            errors.append({
                "error_code": getattr(error, "ErrorCode", None),
                "code": getattr(error, "Code", None),
                "message": getattr(error, "Message", None),
            })
    return errors


def map_microsoft_ads_exception(exception: Exception, context: str) -> AdsAPIError:
    """
    Map Microsoft Advertising SDK exception to our typed error.

    SOAP faults keep the fault message, prefixed the same way for
    every call site.

    Args:
        exception: Exception raised by the bingads/suds stack
        context: Short description of the failed call

    Returns:
        Mapped AdsAPIError instance
    """
    if isinstance(exception, OAuthTokenRequestException):
        return AuthenticationError(
            f"Microsoft Advertising token request failed: {exception.error_description}",
            details={"error_code": exception.error_code},
        )

    if isinstance(exception, WebFault):
        fault_message = getattr(exception.fault, "faultstring", None) or str(exception)
        return TransportFault(
            f"SOAP Fault: {fault_message}",
            platform="microsoft_ads",
            details={"context": context},
        )

    if isinstance(exception, TransportError):
        return TransportFault(
            f"Error {context}: {exception}",
            platform="microsoft_ads",
            details={"http_status": getattr(exception, "httpcode", None)},
        )

    return TransportFault(f"Error {context}: {exception}", platform="microsoft_ads")
