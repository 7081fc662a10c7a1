"""
Routers for the catalog API, one module per resource.
"""

from . import authors, categories, currencies, subcategories, users

__all__ = ["authors", "categories", "currencies", "subcategories", "users"]
