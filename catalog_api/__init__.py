"""
Storefront Catalog API: FastAPI application over the catalog package.
"""
