"""
Inventory module.

Item catalog, stock ledger, transaction journal and bulk import.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
