"""Error types for the bridge gateway."""


class BridgeError(Exception):
    """Base exception for all bridge errors."""
    pass


class ValidationError(BridgeError):
    """Malformed deposit request or call context."""
    pass


class ArithmeticOverflowError(BridgeError):
    """Amount total does not fit in the 256-bit unsigned range."""
    pass


class InsufficientFundingError(BridgeError):
    """Attached native value is below the deposit total."""

    def __init__(self, required: int, provided: int):
        self.required = required
        self.provided = provided
        super().__init__(f"Insufficient funding: need {required}, got {provided}")


class TransferFailure(BridgeError):
    """A ledger rejected a pull or push transfer."""

    def __init__(self, message: str, token: str = "", amount: int = 0):
        self.token = token
        self.amount = amount
        super().__init__(message)


class AuthorizationError(BridgeError):
    """Caller is not allowed to perform the operation."""
    pass


class ReentrancyError(BridgeError):
    """Gateway was re-entered while a call was in flight."""
    pass


class DecodingError(BridgeError):
    """Errors related to operation record decoding."""
    pass


class QueueError(BridgeError):
    """Errors from the ingestion queue RPC."""

    def __init__(self, message: str, method: str = "", details: str = ""):
        self.method = method
        self.details = details
        super().__init__(f"Queue Error [{method}]: {message} - {details}")


class ConfigurationError(BridgeError):
    """Errors related to configuration."""
    pass
