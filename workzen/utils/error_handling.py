"""
Error Handling Module for WorkZen Payroll

This module provides centralized error handling with:
- Custom exception hierarchy
- Standardized error responses
- Error logging and tracking
- Payroll-specific validation errors
- Database error handling
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
    DataError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("workzen.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_PERIOD = "INVALID_PERIOD"
    INVALID_PERCENTAGE = "INVALID_PERCENTAGE"

    # Authentication Errors (401/403)
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    PAYROLL_NOT_FOUND = "PAYROLL_NOT_FOUND"
    PAYRUN_NOT_FOUND = "PAYRUN_NOT_FOUND"
    SALARY_STRUCTURE_NOT_FOUND = "SALARY_STRUCTURE_NOT_FOUND"
    PAYROLL_CONFIGURATION_NOT_FOUND = "PAYROLL_CONFIGURATION_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    DUPLICATE_PAYRUN = "DUPLICATE_PAYRUN"

    # Business Logic Errors (422)
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    COMPONENTS_EXCEED_WAGE = "COMPONENTS_EXCEED_WAGE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"

    # Timeouts (504)
    PAYRUN_TIMEOUT = "PAYRUN_TIMEOUT"

    # Database Errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"

    # Internal Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Base validation exception"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            field=field,
        )


class InvalidAmountException(ValidationException):
    """Invalid monetary amount"""

    def __init__(self, amount: Any, field: str = "amount", message: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid amount: {amount}. Amount must be a positive number.",
            field=field,
            code=ErrorCode.INVALID_AMOUNT,
            details={"provided_amount": str(amount)},
        )


class InvalidPeriodException(ValidationException):
    """Invalid payroll month"""

    def __init__(self, month: Any, message: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid month: {month}. Expected YYYY-MM.",
            field="month",
            code=ErrorCode.INVALID_PERIOD,
            details={"provided": str(month), "expected_format": "YYYY-MM"},
        )


class InvalidPercentageException(ValidationException):
    """Negative or non-numeric configuration percentage"""

    def __init__(self, field: str, value: Any):
        super().__init__(
            message=f"Invalid value for {field}: {value}. Must be zero or greater.",
            field=field,
            code=ErrorCode.INVALID_PERCENTAGE,
            details={"provided": str(value)},
        )


# ============================================================================
# Authentication Exceptions
# ============================================================================

class AuthenticationException(AppException):
    """Caller identity missing or malformed"""

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
        details: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        _details = {"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None}
        if details:
            _details.update(details)
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=_details,
        )


class EmployeeNotFoundException(NotFoundException):
    """Employee not found"""

    def __init__(self, employee_id: Union[str, UUID]):
        super().__init__(
            resource_type="Employee",
            resource_id=employee_id,
            code=ErrorCode.EMPLOYEE_NOT_FOUND,
        )


class PayrollNotFoundException(NotFoundException):
    """Payroll record not found"""

    def __init__(
        self,
        payroll_id: Optional[Union[str, UUID]] = None,
        employee_id: Optional[Union[str, UUID]] = None,
        month: Optional[str] = None,
    ):
        if payroll_id is None and employee_id is not None:
            super().__init__(
                resource_type="Payroll",
                message=f"Payroll for employee '{employee_id}' in {month} not found",
                code=ErrorCode.PAYROLL_NOT_FOUND,
                details={"employee_id": str(employee_id), "month": month},
            )
        else:
            super().__init__(
                resource_type="Payroll",
                resource_id=payroll_id,
                code=ErrorCode.PAYROLL_NOT_FOUND,
            )


class PayrunNotFoundException(NotFoundException):
    """Payrun not found"""

    def __init__(self, payrun_id: Union[str, UUID]):
        super().__init__(
            resource_type="Payrun",
            resource_id=payrun_id,
            code=ErrorCode.PAYRUN_NOT_FOUND,
        )


class SalaryStructureNotFoundException(NotFoundException):
    """No active salary structure for the employee"""

    def __init__(self, employee_id: Union[str, UUID]):
        super().__init__(
            resource_type="SalaryStructure",
            message=f"No active salary structure for employee '{employee_id}'",
            code=ErrorCode.SALARY_STRUCTURE_NOT_FOUND,
            details={"employee_id": str(employee_id)},
        )


class PayrollConfigurationNotFoundException(NotFoundException):
    """Company has not saved a payroll configuration"""

    def __init__(self, company_id: Union[str, UUID]):
        super().__init__(
            resource_type="PayrollConfiguration",
            message=f"Payroll configuration for company '{company_id}' not found",
            code=ErrorCode.PAYROLL_CONFIGURATION_NOT_FOUND,
            details={"company_id": str(company_id)},
        )


class ConflictException(AppException):
    """Resource conflict exception"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        code: ErrorCode = ErrorCode.RESOURCE_CONFLICT,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if resource_type:
            _details["resource_type"] = resource_type
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=_details,
        )


class DuplicatePayrunException(ConflictException):
    """A payrun already exists for the company and month"""

    def __init__(self, month: str, existing_payrun_id: Union[str, UUID]):
        super().__init__(
            message=f"A payrun for {month} already exists",
            resource_type="Payrun",
            code=ErrorCode.DUPLICATE_PAYRUN,
            details={"month": month, "existing_payrun_id": str(existing_payrun_id)},
        )


# ============================================================================
# Business Logic Exceptions
# ============================================================================

class BusinessRuleException(AppException):
    """Business rule violation exception"""

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        code: ErrorCode = ErrorCode.BUSINESS_RULE_VIOLATION,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if rule:
            _details["violated_rule"] = rule
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=_details,
        )


class ComponentsExceedWageException(BusinessRuleException):
    """Percentage components add up to more than the monthly wage"""

    def __init__(self, monthly_wage: Any, components_total: Any, currency: str = "INR"):
        super().__init__(
            message=(
                f"Salary components ({currency} {components_total}) exceed "
                f"monthly wage ({currency} {monthly_wage})"
            ),
            rule="COMPONENTS_WITHIN_WAGE",
            code=ErrorCode.COMPONENTS_EXCEED_WAGE,
            details={
                "monthly_wage": str(monthly_wage),
                "components_total": str(components_total),
                "currency": currency,
            },
        )


class InvalidStatusTransitionException(BusinessRuleException):
    """Status change not allowed from the current status"""

    def __init__(self, resource_type: str, current: str, target: str):
        super().__init__(
            message=f"Cannot move {resource_type} from '{current}' to '{target}'",
            rule="STATUS_PROGRESSION",
            code=ErrorCode.INVALID_STATUS_TRANSITION,
            details={"resource_type": resource_type, "current_status": current, "target_status": target},
        )


class PayrunTimeoutException(AppException):
    """Payrun generation did not finish within the allowed time"""

    def __init__(self, month: str, timeout_seconds: float):
        super().__init__(
            code=ErrorCode.PAYRUN_TIMEOUT,
            message=f"Payrun generation for {month} timed out after {timeout_seconds:g} seconds",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            details={"month": month, "timeout_seconds": timeout_seconds},
        )


# ============================================================================
# Database Exceptions
# ============================================================================

class DatabaseException(AppException):
    """Database error exception"""

    def __init__(
        self,
        message: str = "A database error occurred",
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            original_error=original_error,
        )


class PersistenceException(DatabaseException):
    """A read or write the operation depends on failed"""

    def __init__(
        self,
        operation: str,
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        _details["operation"] = operation
        super().__init__(
            message=f"Failed to {operation}",
            code=ErrorCode.PERSISTENCE_FAILURE,
            original_error=original_error,
            details=_details,
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    logger.error(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.original_error,
    )

    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    code_map = {
        400: ErrorCode.INVALID_INPUT,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors"""
    error_message = "A database error occurred"
    error_code = ErrorCode.DATABASE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
        error_code = ErrorCode.DATA_INTEGRITY_ERROR
        error_str = str(exc.orig).lower() if exc.orig else ""
        if "unique" in error_str or "duplicate" in error_str:
            error_message = "A record with this value already exists"
            error_code = ErrorCode.DUPLICATE_ENTRY
            status_code = status.HTTP_409_CONFLICT
        elif "foreign key" in error_str:
            error_message = "Referenced record does not exist"
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, OperationalError):
        error_message = "Database operation failed"
        error_code = ErrorCode.CONNECTION_ERROR
    elif isinstance(exc, DataError):
        error_message = "Invalid data format for database"
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=error_code,
        message=error_message,
        status_code=status_code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================================================
# Error Tracking Middleware
# ============================================================================

class ErrorTrackingMiddleware:
    """ASGI middleware that logs every failed request with its path and method"""

    def __init__(self, app: FastAPI):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            logger.error(
                f"Request failed: {scope.get('path', 'unknown')}",
                extra={
                    "path": scope.get("path"),
                    "method": scope.get("method"),
                    "exception_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise


__all__ = [
    # Base
    "AppException",
    "ErrorCode",

    # Validation
    "ValidationException",
    "InvalidAmountException",
    "InvalidPeriodException",
    "InvalidPercentageException",

    # Auth
    "AuthenticationException",

    # Resource
    "NotFoundException",
    "EmployeeNotFoundException",
    "PayrollNotFoundException",
    "PayrunNotFoundException",
    "SalaryStructureNotFoundException",
    "PayrollConfigurationNotFoundException",
    "ConflictException",
    "DuplicatePayrunException",

    # Business Logic
    "BusinessRuleException",
    "ComponentsExceedWageException",
    "InvalidStatusTransitionException",
    "PayrunTimeoutException",

    # Database
    "DatabaseException",
    "PersistenceException",

    # Handlers
    "setup_exception_handlers",
    "create_error_response",
    "ErrorTrackingMiddleware",
]
