"""
Reject (damaged goods) log. Independent of stock.
"""

from .router import router  # noqa: F401
from . import models  # noqa: F401
