"""
Category catalog - read-only reference data.

Built-in defaults can be replaced by a YAML file:

    categories:
      - {id: roads, name: Roads}
    assignments:
      <employee account id or username>: [roads]
"""

from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional

import yaml

from ..models.request import Category
from ..utils.exceptions import ConfigError
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORIES = [
    Category(id="roads", name="Roads"),
    Category(id="utilities", name="Utilities"),
    Category(id="sanitation", name="Sanitation"),
    Category(id="parks", name="Parks"),
    Category(id="public-safety", name="Public Safety"),
]


class CategoryCatalog:
    def __init__(
        self,
        categories: Optional[Iterable[Category]] = None,
        assignments: Optional[Dict[str, Iterable[str]]] = None,
    ):
        items = list(categories) if categories is not None else list(DEFAULT_CATEGORIES)
        self._categories: Dict[str, Category] = {c.id: c for c in items}
        self._assignments: Dict[str, FrozenSet[str]] = {
            key: frozenset(ids) for key, ids in (assignments or {}).items()
        }

    @classmethod
    def from_yaml(cls, path: Path) -> "CategoryCatalog":
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigError(f"Failed to load categories from {path}: {str(e)}")

        try:
            categories = [Category(**item) for item in raw.get("categories", [])]
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid category entry in {path}: {str(e)}")

        assignments = raw.get("assignments") or {}
        unknown = {cid for ids in assignments.values() for cid in ids} - {c.id for c in categories}
        if unknown:
            logger.warning("Assignments reference unknown categories", categories=sorted(unknown))

        logger.info("Loaded category catalog", path=str(path), count=len(categories))
        return cls(categories, assignments)

    def categories(self) -> List[Category]:
        return list(self._categories.values())

    def get(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def assignments_for(self, *keys: str) -> FrozenSet[str]:
        """Categories assigned to an employee, looked up by any of its keys (id, username)."""
        result: FrozenSet[str] = frozenset()
        for key in keys:
            result = result | self._assignments.get(key, frozenset())
        return result
