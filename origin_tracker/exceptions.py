"""
Custom exception hierarchy for the order origin tracker.

Exception Hierarchy:
    OriginTrackerError (base)
    ├── StoreError             - Storage unavailable or misconfigured
    └── OrderNotFoundError     - Order does not exist in any order table

    ValidationError            - Input validation failed
    QueryTimeoutError          - Database query exceeded timeout
"""


class OriginTrackerError(Exception):
    """Base exception for all origin tracker errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class StoreError(OriginTrackerError):
    """
    Order storage could not be read or written.

    Raised when a required table is missing or the database
    connection is not usable.
    """

    def __init__(self, message: str, details: str = None, table: str = None):
        super().__init__(message, details)
        self.table = table


class OrderNotFoundError(OriginTrackerError):
    """Order id is not present in posts or wc_orders."""

    def __init__(self, order_id: int):
        super().__init__("Order not found", f"order_id={order_id}")
        self.order_id = order_id


class ValidationError(Exception):
    """
    Input validation failed.

    Used for validating admin input (date ranges, ad spend,
    date override) before it reaches the reporting core.
    """

    def __init__(self, field: str, message: str, value: any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"


class QueryTimeoutError(Exception):
    """
    Database query exceeded timeout.

    Usually means an attribution join scanned far more meta rows
    than expected for the requested date range.
    """

    def __init__(self, query: str, timeout: float, details: str = None):
        self.query = query[:200] + "..." if len(query) > 200 else query
        self.timeout = timeout
        self.details = details
        message = f"Query timed out after {timeout}s"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)

    def __str__(self) -> str:
        return f"QueryTimeoutError: Query timed out after {self.timeout}s - {self.query}"
