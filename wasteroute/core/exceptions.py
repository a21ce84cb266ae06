"""
Custom Exception Hierarchy

Provides structured exceptions for consistent error handling across the application.
"""
from typing import Any
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for API responses"""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"
    ALREADY_EXISTS = "ERR_1003"
    UNAUTHORIZED = "ERR_1004"
    FORBIDDEN = "ERR_1005"

    # Schedule errors (2xxx)
    SCHEDULE_NOT_FOUND = "ERR_2001"
    SCHEDULE_INVALID_STATUS = "ERR_2002"
    STOP_NOT_ON_ROUTE = "ERR_2003"
    ROUTE_DETAILS_FAILED = "ERR_2004"
    SCHEDULE_NOT_STARTABLE = "ERR_2005"
    DRIVER_LOCATION_NOT_FOUND = "ERR_2006"

    # User errors (3xxx)
    USER_NOT_FOUND = "ERR_3001"
    USER_ALREADY_APPROVED = "ERR_3002"
    USER_ALREADY_EXISTS = "ERR_3003"
    INVALID_USER_ROLE = "ERR_3004"

    # Station errors (4xxx)
    TPS_NOT_FOUND = "ERR_4001"


class AppException(Exception):
    """Base exception for all application errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response"""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details
            }
        }


class ValidationException(AppException):
    """Raised when input validation fails"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )
        if field:
            self.details["field"] = field


class NotFoundException(AppException):
    """Raised when a requested resource is not found"""

    def __init__(
        self,
        resource: str,
        identifier: Any,
        error_code: ErrorCode = ErrorCode.NOT_FOUND
    ):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code=error_code,
            status_code=404,
            details={"resource": resource, "identifier": str(identifier)}
        )


class ScheduleNotFoundError(NotFoundException):
    """Raised when schedule is not found"""

    def __init__(self, schedule_id: str):
        super().__init__("Schedule", schedule_id, ErrorCode.SCHEDULE_NOT_FOUND)


class UserNotFoundError(NotFoundException):
    """Raised when user is not found"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id, ErrorCode.USER_NOT_FOUND)


class TPSNotFoundError(NotFoundException):
    """Raised when a transfer point station is not found"""

    def __init__(self, tps_id: str):
        super().__init__("TPS", tps_id, ErrorCode.TPS_NOT_FOUND)


class DriverLocationNotFoundError(NotFoundException):
    def __init__(self, driver_id: str):
        super().__init__("Driver location", driver_id, ErrorCode.DRIVER_LOCATION_NOT_FOUND)


class ScheduleException(AppException):
    """Base exception for schedule-related errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        schedule_id: str | None = None,
        status_code: int = 400,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details=details
        )
        if schedule_id:
            self.details["schedule_id"] = schedule_id


class ScheduleStatusError(ScheduleException):
    """Raised when a schedule has the wrong status for an operation"""

    def __init__(self, schedule_id: str, current_status: str, required_status: str):
        super().__init__(
            message=f"Schedule {schedule_id} has status '{current_status}', required '{required_status}'",
            error_code=ErrorCode.SCHEDULE_INVALID_STATUS,
            schedule_id=schedule_id,
            details={"current_status": current_status, "required_status": required_status}
        )


class StopNotOnRouteError(ScheduleException):
    """Raised when a completion is reported for a station the route does not visit"""

    def __init__(self, schedule_id: str, tps_id: str):
        super().__init__(
            message=f"TPS {tps_id} is not on the route of schedule {schedule_id}",
            error_code=ErrorCode.STOP_NOT_ON_ROUTE,
            schedule_id=schedule_id,
            details={"tps_id": tps_id}
        )


class RouteDetailsLoadError(ScheduleException):
    """Raised when route details could not be assembled"""

    def __init__(self, schedule_id: str, message: str):
        super().__init__(
            message=message,
            error_code=ErrorCode.ROUTE_DETAILS_FAILED,
            schedule_id=schedule_id,
            status_code=500
        )


class ScheduleNotStartableError(ScheduleException):
    """Raised when a driver tries to start a schedule before its collection day"""

    def __init__(self, schedule_id: str, start_date: int):
        super().__init__(
            message=f"Schedule {schedule_id} cannot be started before its collection day",
            error_code=ErrorCode.SCHEDULE_NOT_STARTABLE,
            schedule_id=schedule_id,
            status_code=409,
            details={"start_date": start_date}
        )


class UserException(AppException):
    """Base exception for user-related errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        user_id: str | None = None,
        details: dict[str, Any] | None = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=400,
            details=details
        )
        if user_id:
            self.details["user_id"] = user_id


class UserAlreadyApprovedError(UserException):
    """Raised when rejecting a user that is already approved"""

    def __init__(self, user_id: str):
        super().__init__(
            message=f"User {user_id} is already approved",
            error_code=ErrorCode.USER_ALREADY_APPROVED,
            user_id=user_id
        )


class UserAlreadyExistsError(UserException):
    """Raised when creating a user whose id or email is taken"""

    def __init__(self, identifier: str):
        super().__init__(
            message=f"User already exists: {identifier}",
            error_code=ErrorCode.USER_ALREADY_EXISTS,
            details={"identifier": identifier}
        )
        self.status_code = 409


class InvalidUserRoleError(UserException):
    """Raised when a user does not have the role an operation needs"""

    def __init__(self, user_id: str, current_role: str, required_role: str):
        super().__init__(
            message=f"User {user_id} has role '{current_role}', required '{required_role}'",
            error_code=ErrorCode.INVALID_USER_ROLE,
            user_id=user_id,
            details={"current_role": current_role, "required_role": required_role}
        )
