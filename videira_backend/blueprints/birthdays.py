from flask import Blueprint, jsonify


def init_birthdays_blueprint(token_required, serialize_doc):
    """Initialize the birthdays (aniversariantes) blueprint"""
    birthdays_bp = Blueprint('birthdays', __name__, url_prefix='/aniversariantes')

    @birthdays_bp.route('', methods=['GET'])
    @token_required
    def get_birthdays(console):
        view = console.birthday_view()
        return jsonify({
            'success': True,
            'data': {
                bucket: [serialize_doc(entry) for entry in entries]
                for bucket, entries in view.items()
            },
            'message': 'Birthdays retrieved successfully'
        })

    @birthdays_bp.route('/<member_id>/parabens', methods=['POST'])
    @token_required
    def congratulate(console, member_id):
        member = console.congratulate(member_id)
        return jsonify({
            'success': True,
            'data': {'id': member_id, 'nome': member.get('nome'), 'parabenizado': True},
            'message': f"Parabéns enviados para {member.get('nome', '')}"
        })

    return birthdays_bp
