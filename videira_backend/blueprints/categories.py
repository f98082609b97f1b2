from flask import Blueprint, request, jsonify

from models import validate_category_name


def init_categories_blueprint(token_required, serialize_doc):
    """
    Initialize the categories blueprint.

    <collection> is one of despesaCategories, paymentMethods, ofertaTypes or
    memberCategories; anything else is a 404.
    """
    categories_bp = Blueprint('categories', __name__, url_prefix='/categories')

    @categories_bp.route('/<collection>', methods=['GET'])
    @token_required
    def list_categories(console, collection):
        categories = console.categories(collection)
        if request.args.get('refresh') in ('1', 'true'):
            categories.refetch()
        records = categories.records
        return jsonify({
            'success': True,
            'data': {
                'categories': [serialize_doc(c) for c in records],
                'names': categories.names,
                'total': len(records)
            },
            'message': 'Categories retrieved successfully'
        })

    @categories_bp.route('/<collection>', methods=['POST'])
    @token_required
    def create_category(console, collection):
        categories = console.categories(collection)
        name = validate_category_name((request.get_json(silent=True) or {}).get('name'))
        category = categories.add(name)
        return jsonify({
            'success': True,
            'data': serialize_doc(category),
            'message': 'Category created successfully'
        }), 201

    @categories_bp.route('/<collection>/<category_id>', methods=['PUT'])
    @token_required
    def rename_category(console, collection, category_id):
        categories = console.categories(collection)
        name = validate_category_name((request.get_json(silent=True) or {}).get('name'))
        existing = categories.find(category_id)
        category = categories.rename(category_id, name) or {**existing, 'name': name}
        return jsonify({
            'success': True,
            'data': serialize_doc(category),
            'message': 'Category updated successfully'
        })

    @categories_bp.route('/<collection>/<category_id>', methods=['DELETE'])
    @token_required
    def delete_category(console, collection, category_id):
        categories = console.categories(collection)
        categories.find(category_id)
        categories.delete(category_id)
        return jsonify({
            'success': True,
            'data': {'id': category_id},
            'message': 'Category deleted successfully'
        })

    return categories_bp
