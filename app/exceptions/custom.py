class SupplierError(Exception):
    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class PaymentError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BookingValidationError(Exception):
    def __init__(self, fields: list[str]):
        self.fields = fields
        self.message = "Missing required booking fields: " + ", ".join(fields)
        super().__init__(self.message)


class InvalidBookingStateError(Exception):
    def __init__(self, current: str, expected: str, operation: str):
        self.current = current
        self.expected = expected
        self.operation = operation
        self.message = f"Cannot {operation}: session is '{current}', expected '{expected}'"
        super().__init__(self.message)
