"""
Error taxonomy shared by the services and the HTTP layer.

Every error the core raises carries an ``ErrorKind``. Routers never inspect
messages: the exception handlers in ``main.py`` switch on ``kind`` to pick
the HTTP status.
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    INTERNAL = "internal"


class AppError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# --- Not found ---

class BusinessNotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    code = "business_not_found"

    def __init__(self, business_id):
        super().__init__(f"Business {business_id} not found")


class ProductNotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    code = "product_not_found"

    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class SaleNotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    code = "sale_not_found"

    def __init__(self, sale_id):
        super().__init__(f"Sale {sale_id} not found")


class ExpenseNotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    code = "expense_not_found"

    def __init__(self, expense_id):
        super().__init__(f"Expense {expense_id} not found")


# --- Conflict ---

class InsufficientStock(AppError):
    kind = ErrorKind.CONFLICT
    code = "insufficient_stock"

    def __init__(self, available: float, requested: float):
        super().__init__(
            f"Insufficient stock. Available: {available:.2f}, Requested: {requested:.2f}"
        )
        self.available = available
        self.requested = requested


class StockUpdateConflict(AppError):
    kind = ErrorKind.CONFLICT
    code = "stock_update_conflict"

    def __init__(self, product_id, attempts: int):
        super().__init__(
            f"Stock for product {product_id} kept changing; gave up after {attempts} attempts"
        )


class SaleNotCompleted(AppError):
    kind = ErrorKind.CONFLICT
    code = "sale_not_completed"

    def __init__(self, status):
        super().__init__(f"Sale cannot be changed with status: {status}")


class SaleSyncInProgress(AppError):
    kind = ErrorKind.CONFLICT
    code = "sale_sync_in_progress"

    def __init__(self, sale_id):
        super().__init__(f"Stock for sale {sale_id} is being updated; try again shortly")


class ExpenseNotActive(AppError):
    kind = ErrorKind.CONFLICT
    code = "expense_not_active"

    def __init__(self, status):
        super().__init__(f"Expense cannot be changed with status: {status}")


class ProductHasStock(AppError):
    kind = ErrorKind.CONFLICT
    code = "product_has_stock"

    def __init__(self, stock: float):
        super().__init__(
            f"Cannot delete product with remaining stock. Current stock: {stock:.2f}"
        )


# --- Forbidden ---

class AccessDenied(AppError):
    kind = ErrorKind.FORBIDDEN
    code = "access_denied"


# --- Validation ---

class InvalidMovementKind(AppError):
    kind = ErrorKind.VALIDATION
    code = "invalid_movement_kind"

    def __init__(self, movement_kind):
        super().__init__(f"Invalid movement type: {movement_kind}")


class ReasonRequired(AppError):
    kind = ErrorKind.VALIDATION
    code = "reason_required"

    def __init__(self):
        super().__init__("Reason is required for stock adjustment")


class InvalidQuantity(AppError):
    kind = ErrorKind.VALIDATION
    code = "invalid_quantity"


class InvalidPricing(AppError):
    kind = ErrorKind.VALIDATION
    code = "invalid_pricing"

    def __init__(self):
        super().__init__("Selling price must be greater than cost price")


class InvalidStockThresholds(AppError):
    kind = ErrorKind.VALIDATION
    code = "invalid_stock_thresholds"

    def __init__(self):
        super().__init__("Minimum stock must be less than maximum stock")


# --- Infrastructure ---

class StorageError(AppError):
    kind = ErrorKind.INTERNAL
    code = "storage_error"
