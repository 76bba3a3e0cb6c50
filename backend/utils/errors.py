# backend/utils/errors.py
# Domain errors raised by the ledger and translated to HTTP responses in main.py


class StockError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(StockError):
    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class NotFound(StockError):
    status_code = 404


class InsufficientStock(StockError):
    def __init__(self, available: int, requested: int):
        super().__init__(f"Insufficient stock. Available quantity: {available}")
        self.available = available
        self.requested = requested


class Unauthorized(StockError):
    status_code = 403


class ConcurrentModification(StockError):
    status_code = 409


class CategoryTooDeep(StockError):
    def __init__(self, max_depth: int):
        super().__init__(f"Categories cannot be nested more than {max_depth} levels deep")
        self.max_depth = max_depth
