"""
Error taxonomy shared by services and the HTTP layer

Every error carries the HTTP status it maps to at the boundary so the
exception handlers in app.main can reshape it without a lookup table.
"""

from typing import Optional


class PriceTrackerError(Exception):
    """Base class for all application errors"""
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(PriceTrackerError):
    """A required parameter is missing or invalid"""
    status_code = 400
    error_code = "invalid_input"


class UnknownCategoryError(InputValidationError):
    """Category is not one of the configured price guide categories"""
    error_code = "unknown_category"

    def __init__(self, category: str):
        super().__init__(f"Unknown category: {category}")
        self.category = category


class ProductNotFoundError(PriceTrackerError):
    status_code = 404
    error_code = "not_found"


class PricingAPIError(PriceTrackerError):
    """Upstream pricing service failed on every candidate endpoint"""
    status_code = 502
    error_code = "upstream_error"


class StorageError(PriceTrackerError):
    """Database read or write failure

    ``inserted`` is the number of rows written before the failure, used by
    ingestion to report partially replaced partitions.
    """
    status_code = 500
    error_code = "storage_error"

    def __init__(self, message: str, inserted: int = 0):
        super().__init__(message)
        self.inserted = inserted


class RateLimitExceededError(PriceTrackerError):
    status_code = 429
    error_code = "rate_limited"

    def __init__(self, message: str = "Daily API rate limit exceeded. Please try again tomorrow."):
        super().__init__(message)


class RowParseError(PriceTrackerError):
    """Malformed CSV row; recorded per row and never raised past ingestion"""
    status_code = 400
    error_code = "parse_error"

    def __init__(self, line_number: int, reason: str, raw: Optional[str] = None):
        super().__init__(f"Line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason
        self.raw = raw
