"""
CRUD routes shared by the despesas, receitas and membros blueprints.

Each route works against the console's cached collection: lists are served
from the cache (`?refresh=1` refetches first), mutations go through the
collection so the cache and the remote store stay in step.
"""
from flask import request, jsonify


def register_collection_routes(bp, token_required, serialize_doc, get_collection, validate, label, filter_fields=()):
    """
    Add list/get/create/update/delete routes to a blueprint.

    Args:
        get_collection: console -> RemoteCollection
        validate: (payload, partial) -> cleaned fields, raises ValidationError
        label: plural resource name used in the response envelope
        filter_fields: query-string fields matched exactly on list
    """

    @bp.route('', methods=['GET'])
    @token_required
    def list_records(console):
        collection = get_collection(console)
        if request.args.get('refresh') in ('1', 'true'):
            collection.refetch()

        records = collection.records
        for field in filter_fields:
            value = request.args.get(field)
            if value:
                records = [r for r in records if r.get(field) == value]

        return jsonify({
            'success': True,
            'data': {
                label: [serialize_doc(r) for r in records],
                'total': len(records),
                'loading': collection.loading
            },
            'message': f'{label.capitalize()} retrieved successfully'
        })

    @bp.route('/<record_id>', methods=['GET'])
    @token_required
    def get_record(console, record_id):
        record = get_collection(console).find(record_id)
        return jsonify({
            'success': True,
            'data': serialize_doc(record),
            'message': 'Record retrieved successfully'
        })

    @bp.route('', methods=['POST'])
    @token_required
    def create_record(console):
        fields = validate(request.get_json(silent=True), False)
        record = get_collection(console).create(fields)
        return jsonify({
            'success': True,
            'data': serialize_doc(record),
            'message': 'Record created successfully'
        }), 201

    @bp.route('/<record_id>', methods=['PUT'])
    @token_required
    def update_record(console, record_id):
        collection = get_collection(console)
        patch = validate(request.get_json(silent=True), True)
        existing = collection.find(record_id)
        record = collection.update(record_id, patch) or {**existing, **patch}
        return jsonify({
            'success': True,
            'data': serialize_doc(record),
            'message': 'Record updated successfully'
        })

    @bp.route('/<record_id>', methods=['DELETE'])
    @token_required
    def delete_record(console, record_id):
        collection = get_collection(console)
        collection.find(record_id)
        collection.delete(record_id)
        return jsonify({
            'success': True,
            'data': {'id': record_id},
            'message': 'Record deleted successfully'
        })

    return bp
