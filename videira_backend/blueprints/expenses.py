from flask import Blueprint

from models import validate_expense_payload
from utils.collection_routes import register_collection_routes


def init_expenses_blueprint(token_required, serialize_doc):
    """Initialize the expenses (despesas) blueprint with the auth decorator"""
    expenses_bp = Blueprint('expenses', __name__, url_prefix='/despesas')
    return register_collection_routes(
        expenses_bp, token_required, serialize_doc,
        get_collection=lambda console: console.expenses,
        validate=validate_expense_payload,
        label='despesas',
        filter_fields=('status', 'categoria')
    )
