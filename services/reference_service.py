from typing import Dict, List
from pathlib import Path
import csv
import re

from config.settings import settings


class ReferenceDataService:
    """
    Read-only category and warehouse reference data from CSV files.
    """

    @staticmethod
    def _read_rows(path: Path) -> List[Dict[str, str]]:
        with open(path, newline="", encoding="utf-8") as f:
            return [
                {key: (value or "") for key, value in row.items() if key is not None}
                for row in csv.DictReader(f)
            ]

    @staticmethod
    def categories_path() -> Path:
        return Path(settings.DATA_DIR) / settings.CATEGORIES_FILE

    @staticmethod
    def warehouses_path() -> Path:
        return Path(settings.DATA_DIR) / settings.WAREHOUSES_FILE

    @classmethod
    def load_categories(cls) -> List[Dict[str, object]]:
        """
        Group (category, subcategory) rows into the two-level taxonomy.

        Returns:
            [{"id": "packaging", "name": "Packaging", "subcategories": [...]}, ...]
            in first-seen order
        """
        categories: Dict[str, Dict[str, object]] = {}
        for row in cls._read_rows(cls.categories_path()):
            name = (row.get("category") or "").strip()
            subcategory = (row.get("subcategory") or "").strip()
            if not name:
                continue
            entry = categories.setdefault(name, {
                "id": re.sub(r"\s+", "-", name.lower()),
                "name": name,
                "subcategories": [],
            })
            if subcategory:
                entry["subcategories"].append(subcategory)
        return list(categories.values())

    @classmethod
    def load_warehouses(cls) -> List[Dict[str, str]]:
        return cls._read_rows(cls.warehouses_path())
