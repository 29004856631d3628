"""Exceptions raised by the fill pipeline, each carrying its HTTP status."""

from __future__ import annotations


class FertigmeldungError(RuntimeError):
    """Domain-specific exception for service errors."""

    status_code = 500


class Unauthorized(FertigmeldungError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class BadRequest(FertigmeldungError):
    status_code = 400


class OrderNotFound(FertigmeldungError):
    def __init__(self, message: str = "Order not found"):
        super().__init__(message)


class ContactNotFound(FertigmeldungError):
    def __init__(self, message: str = "Contact not found in order"):
        super().__init__(message)
