# backend/modules/reporting/exceptions.py

"""
Custom exceptions for the reporting module.

Each exception carries the HTTP status it maps to so the API layer can
render a consistent error envelope.
"""

from typing import Optional, Dict, Any, List

from fastapi import status


class ReportingBaseException(Exception):
    """Base exception for all reporting errors"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ReportValidationError(ReportingBaseException):
    """Raised when filters, pagination, sort or export input is invalid"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", errors)
        self.errors = errors or []


class ReportNotFoundError(ReportingBaseException):
    """Raised when a report id is not registered"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, report_id: str):
        message = "Report not found"
        details = f"Report with ID '{report_id}' does not exist"
        super().__init__(message, "NOT_FOUND", details)
        self.report_id = report_id


class ReportExportError(ReportingBaseException):
    """Raised when a result set cannot be serialized to the requested format"""

    def __init__(self, report_id: str, export_format: str, reason: str):
        message = "Failed to generate export"
        super().__init__(
            message,
            "EXPORT_ERROR",
            {"report_id": report_id, "format": export_format, "reason": reason},
        )


class ReportStoreError(ReportingBaseException):
    """Raised when the document store fails to execute a pipeline"""

    def __init__(self, operation: str, reason: str):
        message = f"Store operation '{operation}' failed"
        super().__init__(message, "STORE_ERROR", {"operation": operation, "reason": reason})
        self.operation = operation
        self.reason = reason


def handle_reporting_exception(exc: ReportingBaseException) -> Dict[str, Any]:
    """Convert reporting exception to API response format"""
    body: Dict[str, Any] = {"success": False, "error": exc.message}
    # Store and export internals are logged, never returned to the caller
    if exc.status_code < 500 and exc.details:
        body["details"] = exc.details
    return body
