from typing import List
from .base import CamelModel


class CategoryResponse(CamelModel):
    id: str
    name: str
    subcategories: List[str]
