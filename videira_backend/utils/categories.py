"""
User-defined category lists.

Every kind of category (expense categories, payment methods, offering types,
member categories) lives in its own collection with the same shape:
{name, userId, createdAt}. Lists are shown oldest first.
"""
from typing import Any, Dict, Optional

from utils.remote_collection import RemoteCollection


class CategoryCollection(RemoteCollection):
    sort_field = 'createdAt'
    sort_direction = 'asc'

    def add(self, name: str) -> Dict[str, Any]:
        return self.create({'name': name})

    def rename(self, category_id: str, name: str) -> Optional[Dict[str, Any]]:
        return self.update(category_id, {'name': name})

    @property
    def names(self):
        return [category['name'] for category in self.records]
