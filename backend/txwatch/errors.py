"""
Transaction error taxonomy
"""

from typing import List, Optional


class TransactionError(Exception):
    """Base class for every error raised by the transaction engine"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotConnectedError(TransactionError):
    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


class InvalidParametersError(TransactionError):
    """Params failed schema validation. `errors` holds one message per field."""

    def __init__(self, errors: List[str]):
        super().__init__(f"Invalid parameters: {', '.join(errors)}")
        self.errors = errors


class BuildFailedError(TransactionError):
    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class SigningFailedError(TransactionError):
    pass


class SubmitFailedError(TransactionError):
    pass


class RegistrationError(TransactionError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StreamError(TransactionError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PollingError(TransactionError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PollingTimeoutError(PollingError):
    pass
