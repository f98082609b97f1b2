from flask import Blueprint

from models import validate_income_payload
from utils.collection_routes import register_collection_routes


def init_income_blueprint(token_required, serialize_doc):
    """Initialize the income (receitas) blueprint with the auth decorator"""
    income_bp = Blueprint('income', __name__, url_prefix='/receitas')
    return register_collection_routes(
        income_bp, token_required, serialize_doc,
        get_collection=lambda console: console.income,
        validate=validate_income_payload,
        label='receitas',
        filter_fields=('categoria', 'formaPagamento', 'membro')
    )
