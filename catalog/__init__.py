"""
Catalog domain package.

Entity models, the error taxonomy, the MongoDB persistence adapter and the
local-disk upload sink shared by the HTTP layer.
"""
