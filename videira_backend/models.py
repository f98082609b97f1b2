import re
from datetime import date, datetime
from typing import Dict, List, Optional, Any

from utils.errors import ValidationError

# ==================== COLLECTION NAMES ====================

EXPENSES = 'despesas'
INCOME = 'receitas'
MEMBERS = 'membros'
MEMBER_CATEGORIES = 'memberCategories'
CHURCH_CONFIG = 'igrejaConfig'
CONGRATULATED = 'parabenizados'
BIRTHDAY_NOTIFICATIONS = 'notificacoes_aniversario'

# Named category collections used by the console forms
CATEGORY_COLLECTIONS = ('despesaCategories', 'paymentMethods', 'ofertaTypes', MEMBER_CATEGORIES)

EXPENSE_STATUSES = ['Pago', 'Pendente', 'Vencido']
MEMBER_STATUSES = ['Ativo', 'Inativo', 'Visitante']
DEFAULT_PAYMENT_METHOD = 'pix'


class DatabaseSchema:
    """
    Centralized database schema definitions for all collections.
    Documents keep the console's Portuguese field names so existing data and
    backup files stay readable.
    """

    # ==================== RECEITAS COLLECTION ====================

    @staticmethod
    def get_income_schema() -> Dict[str, Any]:
        """
        Schema for receitas collection.
        Tithes, offerings, donations and any other income.
        """
        return {
            'descricao': str,  # Required
            'categoria': str,  # Required, e.g. 'dizimo', 'oferta'
            'valor': float,  # Required, >= 0
            'data': str,  # Required, calendar date YYYY-MM-DD
            'formaPagamento': str,  # Default 'pix'
            'observacoes': str,  # Default ''
            'membro': str,  # Contributor name, default ''
            'userId': str,  # Owner uid, immutable
            'createdAt': datetime,  # Stamped on create
        }

    @staticmethod
    def get_income_indexes() -> List[Dict[str, Any]]:
        """Define indexes for receitas collection."""
        return [
            {'keys': [('userId', 1), ('createdAt', -1)], 'name': 'user_created_desc'},
            {'keys': [('userId', 1), ('categoria', 1)], 'name': 'user_category'},
        ]

    # ==================== DESPESAS COLLECTION ====================

    @staticmethod
    def get_expense_schema() -> Dict[str, Any]:
        """Schema for despesas collection."""
        return {
            'descricao': str,  # Required
            'categoria': str,  # Required
            'valor': float,  # Required, >= 0
            'data': str,  # Required, YYYY-MM-DD
            'status': str,  # 'Pago', 'Pendente' or 'Vencido'
            'userId': str,
            'createdAt': datetime,
        }

    @staticmethod
    def get_expense_indexes() -> List[Dict[str, Any]]:
        """Define indexes for despesas collection."""
        return [
            {'keys': [('userId', 1), ('createdAt', -1)], 'name': 'user_created_desc'},
            {'keys': [('userId', 1), ('status', 1)], 'name': 'user_status'},
        ]

    # ==================== MEMBROS COLLECTION ====================

    @staticmethod
    def get_member_schema() -> Dict[str, Any]:
        """Schema for membros collection."""
        return {
            'nome': str,  # Required, non-empty
            'email': Optional[str],
            'telefone': Optional[str],
            'endereco': Optional[str],
            'dataNascimento': Optional[str],  # YYYY-MM-DD
            'dataCadastro': str,  # YYYY-MM-DD, defaults to the creation day
            'status': str,  # 'Ativo', 'Inativo' or 'Visitante'
            'categoria': Optional[str],  # Name from memberCategories
            'observacoes': Optional[str],
            'userId': str,
            'createdAt': datetime,
        }

    @staticmethod
    def get_member_indexes() -> List[Dict[str, Any]]:
        """Define indexes for membros collection."""
        return [
            {'keys': [('userId', 1), ('dataCadastro', -1)], 'name': 'user_registration_desc'},
            {'keys': [('userId', 1), ('createdAt', -1)], 'name': 'user_created_desc'},
        ]

    # ==================== CATEGORY COLLECTIONS ====================

    @staticmethod
    def get_category_schema() -> Dict[str, Any]:
        """
        Schema shared by every named category collection.
        Names are not unique: the same name may be added twice.
        """
        return {
            'name': str,
            'userId': str,
            'createdAt': datetime,
        }

    @staticmethod
    def get_category_indexes() -> List[Dict[str, Any]]:
        return [
            {'keys': [('userId', 1), ('createdAt', 1)], 'name': 'user_created_asc'},
        ]

    # ==================== IGREJACONFIG COLLECTION ====================

    @staticmethod
    def get_church_config_schema() -> Dict[str, Any]:
        """Schema for igrejaConfig: one document per owner, keyed by the owner uid."""
        return {
            'nome': str,
            'endereco': str,
            'telefone': str,
            'email': str,
            'pastor': str,
            'cnpj': str,
            'descricao': str,
            'userId': str,
            'createdAt': datetime,
            'updatedAt': datetime,
        }

    # ==================== MARKER COLLECTIONS ====================

    @staticmethod
    def get_congratulated_marker_schema() -> Dict[str, Any]:
        """parabenizados/{owner}_{member}_{YYYY-MM-DD}"""
        return {
            'membroId': str,
            'userId': str,
            'data': str,
            'timestamp': datetime,
        }

    @staticmethod
    def get_birthday_notification_marker_schema() -> Dict[str, Any]:
        """notificacoes_aniversario/{owner}_{member}_{kind}_{YYYY-MM-DD}"""
        return {
            'membroId': str,
            'userId': str,
            'tipo': str,  # 'hoje' or 'amanha'
            'data': str,
            'timestamp': datetime,
        }

    @staticmethod
    def get_marker_indexes() -> List[Dict[str, Any]]:
        return [
            {'keys': [('userId', 1), ('data', -1)], 'name': 'user_day_desc'},
        ]


class DatabaseInitializer:
    """
    Database initialization utilities for MongoDB deployments.
    Handles collection creation and index setup.
    """

    def __init__(self, mongo_db):
        """
        Initialize with MongoDB database instance.

        Args:
            mongo_db: PyMongo database instance
        """
        self.db = mongo_db
        self.schema = DatabaseSchema()

    def collection_indexes(self) -> Dict[str, List[Dict[str, Any]]]:
        collections = {
            INCOME: self.schema.get_income_indexes(),
            EXPENSES: self.schema.get_expense_indexes(),
            MEMBERS: self.schema.get_member_indexes(),
            CONGRATULATED: self.schema.get_marker_indexes(),
            BIRTHDAY_NOTIFICATIONS: self.schema.get_marker_indexes(),
        }
        for name in CATEGORY_COLLECTIONS:
            collections[name] = self.schema.get_category_indexes()
        return collections

    def initialize_collections(self):
        """
        Initialize all collections with proper indexes.
        Safe to run multiple times - existing collections and indexes are kept.
        """
        results = {
            'created': [],
            'existing': [],
            'indexes_created': [],
            'errors': []
        }

        existing_collections = self.db.list_collection_names()
        for collection_name, indexes in self.collection_indexes().items():
            try:
                if collection_name in existing_collections:
                    results['existing'].append(collection_name)
                else:
                    self.db.create_collection(collection_name)
                    results['created'].append(collection_name)

                collection = self.db[collection_name]
                existing_indexes = collection.index_information()

                for index_def in indexes:
                    index_name = index_def.get('name')
                    if index_name in existing_indexes:
                        continue
                    created_index_name = collection.create_index(
                        index_def['keys'],
                        unique=index_def.get('unique', False),
                        name=index_name
                    )
                    results['indexes_created'].append(f"{collection_name}.{created_index_name}")

            except Exception as e:
                results['errors'].append(f"Failed to initialize collection {collection_name}: {str(e)}")

        return results


class ModelValidator:
    """
    Validation utilities for form data.
    Provides validation methods for common data types and business rules.
    """

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return isinstance(email, str) and re.match(pattern, email) is not None

    @staticmethod
    def validate_amount(amount) -> bool:
        """Validate amount is a non-negative number."""
        if isinstance(amount, bool):
            return False
        try:
            return float(amount) >= 0
        except (ValueError, TypeError):
            return False

    @staticmethod
    def validate_date(date_value) -> bool:
        """Validate a calendar date or a YYYY-MM-DD string."""
        if isinstance(date_value, date):
            return True
        if not isinstance(date_value, str):
            return False
        try:
            date.fromisoformat(date_value[:10])
            return True
        except ValueError:
            return False

    @staticmethod
    def validate_status(status: str, valid_statuses: List[str]) -> bool:
        """Validate status against allowed values."""
        return status in valid_statuses

    @staticmethod
    def validate_required_text(value) -> bool:
        return isinstance(value, str) and bool(value.strip())


def _date_string(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value[:10]


def _validate_financial_fields(data: Dict[str, Any], partial: bool, errors: Dict[str, List[str]]) -> Dict[str, Any]:
    cleaned = {}
    if not partial or 'descricao' in data:
        if not ModelValidator.validate_required_text(data.get('descricao')):
            errors['descricao'] = ['Description is required']
        else:
            cleaned['descricao'] = data['descricao'].strip()
    if not partial or 'categoria' in data:
        if not ModelValidator.validate_required_text(data.get('categoria')):
            errors['categoria'] = ['Category is required']
        else:
            cleaned['categoria'] = data['categoria'].strip()
    if not partial or 'valor' in data:
        if data.get('valor') is None or not ModelValidator.validate_amount(data.get('valor')):
            errors['valor'] = ['Valid non-negative amount is required']
        else:
            cleaned['valor'] = float(data['valor'])
    if not partial or 'data' in data:
        if not ModelValidator.validate_date(data.get('data')):
            errors['data'] = ['Date must be in YYYY-MM-DD format']
        else:
            cleaned['data'] = _date_string(data['data'])
    return cleaned


def validate_expense_payload(data: Optional[Dict[str, Any]], partial: bool = False) -> Dict[str, Any]:
    """
    Validate an expense form submission.

    Returns:
        dict: Cleaned fields ready for the expenses collection

    Raises:
        ValidationError: one entry per failing field
    """
    data = data or {}
    errors: Dict[str, List[str]] = {}
    cleaned = _validate_financial_fields(data, partial, errors)
    if not partial or 'status' in data:
        status = data.get('status', 'Pendente') if not partial else data.get('status')
        if not ModelValidator.validate_status(status, EXPENSE_STATUSES):
            errors['status'] = [f"Status must be one of: {', '.join(EXPENSE_STATUSES)}"]
        else:
            cleaned['status'] = status
    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_income_payload(data: Optional[Dict[str, Any]], partial: bool = False) -> Dict[str, Any]:
    """Validate an income form submission (tithe, offering, donation...)."""
    data = data or {}
    errors: Dict[str, List[str]] = {}
    cleaned = _validate_financial_fields(data, partial, errors)
    for field in ('formaPagamento', 'observacoes', 'membro'):
        if field in data:
            if data[field] is not None and not isinstance(data[field], str):
                errors[field] = [f'{field} must be text']
            else:
                cleaned[field] = data[field] or ''
    if errors:
        raise ValidationError(errors)
    return cleaned


MEMBER_OPTIONAL_TEXT = ('email', 'telefone', 'endereco', 'categoria', 'observacoes')


def validate_member_payload(data: Optional[Dict[str, Any]], partial: bool = False) -> Dict[str, Any]:
    """Validate a member form submission."""
    data = data or {}
    errors: Dict[str, List[str]] = {}
    cleaned = {}
    if not partial or 'nome' in data:
        if not ModelValidator.validate_required_text(data.get('nome')):
            errors['nome'] = ['Name is required']
        else:
            cleaned['nome'] = data['nome'].strip()
    if not partial or 'status' in data:
        status = data.get('status', 'Ativo') if not partial else data.get('status')
        if not ModelValidator.validate_status(status, MEMBER_STATUSES):
            errors['status'] = [f"Status must be one of: {', '.join(MEMBER_STATUSES)}"]
        else:
            cleaned['status'] = status
    if data.get('email') and not ModelValidator.validate_email(data['email']):
        errors['email'] = ['Invalid email format']
    for field in ('dataNascimento', 'dataCadastro'):
        if data.get(field):
            if not ModelValidator.validate_date(data[field]):
                errors[field] = ['Date must be in YYYY-MM-DD format']
            else:
                cleaned[field] = _date_string(data[field])
    for field in MEMBER_OPTIONAL_TEXT:
        if field in data and field not in errors:
            cleaned[field] = data[field] or ''
    if errors:
        raise ValidationError(errors)
    return cleaned


def validate_category_name(name) -> str:
    if not ModelValidator.validate_required_text(name):
        raise ValidationError({'name': ['Category name is required']})
    return name.strip()


CHURCH_PROFILE_FIELDS = ('nome', 'endereco', 'telefone', 'email', 'pastor', 'cnpj', 'descricao')


def validate_church_profile_payload(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate church profile settings. Every field is optional text."""
    data = data or {}
    errors: Dict[str, List[str]] = {}
    cleaned = {}
    for field in CHURCH_PROFILE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if value is not None and not isinstance(value, str):
            errors[field] = [f'{field} must be text']
        else:
            cleaned[field] = value or ''
    if cleaned.get('email') and not ModelValidator.validate_email(cleaned['email']):
        errors['email'] = ['Invalid email format']
    if errors:
        raise ValidationError(errors)
    return cleaned


__all__ = [
    'DatabaseSchema',
    'DatabaseInitializer',
    'ModelValidator',
    'validate_expense_payload',
    'validate_income_payload',
    'validate_member_payload',
    'validate_category_name',
    'validate_church_profile_payload',
]
