from flask import Blueprint

from models import validate_member_payload
from utils.collection_routes import register_collection_routes


def init_members_blueprint(token_required, serialize_doc):
    """Initialize the members (membros) blueprint with the auth decorator"""
    members_bp = Blueprint('members', __name__, url_prefix='/membros')
    return register_collection_routes(
        members_bp, token_required, serialize_doc,
        get_collection=lambda console: console.members,
        validate=validate_member_payload,
        label='membros',
        filter_fields=('status', 'categoria')
    )
