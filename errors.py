"""
Error types raised by the store and the content services.

The HTTP layer maps each one to a status code (see main.py).
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFound(StoreError):
    status_code = 404


class DuplicateKey(StoreError):
    status_code = 409


class ValidationError(StoreError):
    status_code = 400


class StoreUnavailable(StoreError):
    status_code = 503
