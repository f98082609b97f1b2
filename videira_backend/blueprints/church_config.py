from flask import Blueprint, request, jsonify

from models import validate_church_profile_payload


def init_church_config_blueprint(token_required, serialize_doc):
    """Initialize the church profile (igreja-config) blueprint"""
    church_config_bp = Blueprint('church_config', __name__, url_prefix='/igreja-config')

    @church_config_bp.route('', methods=['GET'])
    @token_required
    def get_church_config(console):
        profile = console.church_profile
        config = profile.fetch() if request.args.get('refresh') in ('1', 'true') else dict(profile.config)
        return jsonify({
            'success': True,
            'data': serialize_doc(config),
            'message': 'Church config retrieved successfully'
        })

    @church_config_bp.route('', methods=['PUT'])
    @token_required
    def save_church_config(console):
        updates = validate_church_profile_payload(request.get_json(silent=True))
        profile = console.church_profile
        if not profile.save(updates):
            return jsonify({
                'success': False,
                'message': 'Failed to save church config',
                'errors': {'general': ['Erro ao salvar configurações']}
            }), 500

        return jsonify({
            'success': True,
            'data': serialize_doc(dict(profile.config)),
            'message': 'Church config saved successfully'
        })

    return church_config_bp
