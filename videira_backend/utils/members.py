"""
Member collections: the membership roll (membros) and its categories.
"""
from datetime import date
from typing import Any, Dict

from models import MEMBER_CATEGORIES, MEMBERS
from utils.categories import CategoryCollection
from utils.remote_collection import RemoteCollection


class MemberCollection(RemoteCollection):
    """Members, newest registration first"""

    collection_name = MEMBERS
    sort_field = 'dataCadastro'
    sort_direction = 'desc'

    def prepare_create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(fields)
        if not data.get('dataCadastro'):
            data['dataCadastro'] = date.today().isoformat()
        data.setdefault('status', 'Ativo')
        return data


class MemberCategoryCollection(CategoryCollection):
    """Member categories (Criança, Jovem, Adulto...)"""

    collection_name = MEMBER_CATEGORIES
