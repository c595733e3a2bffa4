"""
Custom exceptions for the field tracking system.
Handles HTTP exceptions, validation errors, and business logic errors.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Standard error detail structure"""
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class BaseCustomException(HTTPException):
    """Base class for all custom exceptions"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        field: Optional[str] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.field = field

    def __str__(self) -> str:
        return str(self.detail)


# =============================================================================
# HTTP EXCEPTIONS
# =============================================================================

class NotFoundError(BaseCustomException):
    """Resource not found exception"""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with identifier '{identifier}' not found",
            error_code="RESOURCE_NOT_FOUND"
        )


class ConflictError(BaseCustomException):
    """Resource conflict exception"""

    def __init__(self, message: str, error_code: str = "RESOURCE_CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=message,
            error_code=error_code
        )


class ServiceUnavailableError(BaseCustomException):
    """Service unavailable exception"""

    def __init__(self, service: str = "Service"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{service} is temporarily unavailable",
            error_code="SERVICE_UNAVAILABLE"
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(BaseCustomException):
    """Base validation error"""

    def __init__(self, message: str, field: str = None, errors: List[ErrorDetail] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=message,
            error_code="VALIDATION_ERROR",
            field=field
        )
        self.errors = errors or []


class InvalidCoordinatesError(ValidationError):
    """Invalid GPS coordinates error"""

    def __init__(self, latitude: float = None, longitude: float = None):
        if latitude is not None and longitude is not None:
            message = f"Invalid coordinates: latitude={latitude}, longitude={longitude}"
        else:
            message = "Invalid GPS coordinates provided"

        super().__init__(
            message=message,
            field="coordinates",
            errors=[
                ErrorDetail(
                    code="INVALID_COORDINATES",
                    message="Latitude must be between -90 and 90, longitude between -180 and 180",
                    field="coordinates"
                )
            ]
        )
        self.error_code = "INVALID_COORDINATES"


class InvalidDateRangeError(ValidationError):
    """Invalid date range error"""

    def __init__(self, start_date: str = None, end_date: str = None):
        message = "Invalid date range: start date must be before end date"
        if start_date and end_date:
            message = f"Invalid date range: {start_date} to {end_date}"

        super().__init__(
            message=message,
            field="date_range",
            errors=[
                ErrorDetail(
                    code="INVALID_DATE_RANGE",
                    message=message,
                    field="date_range"
                )
            ]
        )
        self.error_code = "INVALID_DATE_RANGE"


class InvalidPriorityError(ValidationError):
    """Initial destination priority outside the selectable range"""

    def __init__(self, priority: Any, max_priority: int):
        super().__init__(
            message=f"Invalid priority: {priority}. Must be an integer between 1 and {max_priority}",
            field="priority",
            errors=[
                ErrorDetail(
                    code="INVALID_PRIORITY",
                    message=f"Priority must be between 1 and {max_priority}",
                    field="priority",
                    details={"provided_value": priority}
                )
            ]
        )
        self.error_code = "INVALID_PRIORITY"


# =============================================================================
# BUSINESS LOGIC ERRORS
# =============================================================================

class BusinessLogicError(BaseCustomException):
    """Base business logic error"""

    def __init__(self, message: str, error_code: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=message,
            error_code=error_code
        )


class GPSTrackingError(BusinessLogicError):
    """GPS tracking related errors"""

    def __init__(self, agent_id: str, reason: str, error_code: str = "GPS_TRACKING_ERROR"):
        super().__init__(
            message=f"GPS tracking error for agent {agent_id}: {reason}",
            error_code=error_code
        )
        self.agent_id = agent_id
        self.reason = reason


class InvalidPingError(GPSTrackingError):
    """A location ping with malformed coordinates or timestamp"""

    def __init__(self, agent_id: str, reason: str):
        super().__init__(agent_id, reason, error_code="INVALID_PING")


class UnknownAgentError(NotFoundError):
    """Requested agent id is not in the agent directory"""

    def __init__(self, agent_id: str):
        super().__init__(resource="Agent", identifier=agent_id)
        self.error_code = "UNKNOWN_AGENT"
        self.agent_id = agent_id


class CompletedDestinationError(BusinessLogicError):
    """Reached destinations cannot be changed"""

    def __init__(self, destination_id: str):
        super().__init__(
            message=f"Destination {destination_id} is already reached and cannot be modified",
            error_code="DESTINATION_COMPLETED"
        )


class SaveError(BaseCustomException):
    """Destination batch could not be persisted"""

    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Save failed: {reason}",
            error_code="SAVE_FAILED"
        )
        self.reason = reason


class OperationInProgressError(ConflictError):
    """A load or save for the same collection is still outstanding"""

    def __init__(self, operation: str):
        super().__init__(
            message=f"{operation} is already in progress",
            error_code="OPERATION_IN_PROGRESS"
        )


class ExternalServiceError(ServiceUnavailableError):
    """External service error"""

    def __init__(self, service_name: str, operation: str = None):
        super().__init__(service=service_name)
        if operation:
            self.detail = f"External service {service_name} failed during {operation}"
        self.error_code = "EXTERNAL_SERVICE_ERROR"


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def format_error_response(error: BaseCustomException) -> Dict[str, Any]:
    """Format error response for consistent API responses"""
    response = {
        "error": True,
        "error_code": getattr(error, 'error_code', None) or 'UNKNOWN_ERROR',
        "message": error.detail,
        "status_code": error.status_code
    }

    if getattr(error, 'field', None):
        response["field"] = error.field

    if getattr(error, 'errors', None):
        response["errors"] = [err.model_dump() for err in error.errors]

    return response


async def custom_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render custom exceptions with the standard error body."""
    if isinstance(exc, BaseCustomException):
        body = format_error_response(exc)
    else:
        body = {
            "error": True,
            "error_code": "HTTP_ERROR",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)

