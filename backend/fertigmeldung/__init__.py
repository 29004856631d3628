"""
Fertigmeldung PDF filler.

This package bundles the pieces behind the ``fill_pdf`` function:
  - resolving orders, contacts, positions and parts from the sevDesk API
  - mapping customer and address data onto form field names
  - extracting system size (kWp) and inverter power (kW/kVA) from line items
  - filling the "Fertigmeldung Ihrer Anlage" AcroForm template
"""

from .errors import (
    BadRequest,
    ContactNotFound,
    FertigmeldungError,
    OrderNotFound,
    Unauthorized,
)
from .service import FertigmeldungService, FunctionResponse

__all__ = [
    "FertigmeldungService",
    "FunctionResponse",
    "FertigmeldungError",
    "Unauthorized",
    "BadRequest",
    "OrderNotFound",
    "ContactNotFound",
]
