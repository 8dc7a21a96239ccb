# backend/jupiter/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- The package exposes a clear surface.

The actual model classes are kept in jupiter/apps/*/models.py.
"""

from .apps.inventory import models as inventory_models      # items, transactions, adjustments
from .apps.rejects import models as rejects_models          # reject master + reject logs

__all__ = [
    "inventory_models",
    "rejects_models",
]
