from .category_catalog import CategoryCatalog
from .request_store import RequestStore, is_visible

__all__ = ["CategoryCatalog", "RequestStore", "is_visible"]
