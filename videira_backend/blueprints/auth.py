from flask import Blueprint, request, jsonify

from models import ModelValidator
from utils.errors import AuthenticationError


def validate_password(password):
    # Firebase rejects shorter passwords
    return isinstance(password, str) and len(password) >= 6


def init_auth_blueprint(identity, registry, token_required):
    """Initialize the auth blueprint with the identity provider and console registry"""
    auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

    def _credentials_errors(data):
        errors = {}
        if not ModelValidator.validate_email(data.get('email', '')):
            errors['email'] = ['Valid email is required']
        if not validate_password(data.get('password')):
            errors['password'] = ['Password must be at least 6 characters']
        return errors

    def _session_response(user, message, status=200):
        console = registry.get(user)
        return jsonify({
            'success': True,
            'data': {
                'user': {
                    'uid': user['uid'],
                    'email': user.get('email'),
                    'displayName': user.get('displayName')
                },
                'idToken': user.get('idToken'),
                'refreshToken': user.get('refreshToken'),
                'loading': console.expenses.loading or console.income.loading
            },
            'message': message
        }), status

    @auth_bp.route('/register', methods=['POST'])
    def register():
        data = request.get_json(silent=True) or {}
        errors = _credentials_errors(data)
        if not ModelValidator.validate_required_text(data.get('displayName')):
            errors['displayName'] = ['Name is required']
        if errors:
            return jsonify({
                'success': False,
                'message': 'Validation failed',
                'errors': errors
            }), 400

        try:
            user = identity.sign_up(data['email'].strip().lower(), data['password'], data['displayName'].strip())
        except AuthenticationError as e:
            return jsonify({
                'success': False,
                'message': 'Registration failed',
                'errors': {'general': [str(e)]}
            }), 400

        return _session_response(user, 'Account created successfully', 201)

    @auth_bp.route('/login', methods=['POST'])
    def login():
        data = request.get_json(silent=True) or {}
        errors = _credentials_errors(data)
        if errors:
            return jsonify({
                'success': False,
                'message': 'Validation failed',
                'errors': errors
            }), 400

        try:
            user = identity.sign_in(data['email'].strip().lower(), data['password'])
        except AuthenticationError as e:
            return jsonify({
                'success': False,
                'message': 'Invalid email or password',
                'errors': {'general': [str(e)]}
            }), 401

        return _session_response(user, 'Login successful')

    @auth_bp.route('/password-reset', methods=['POST'])
    def password_reset():
        data = request.get_json(silent=True) or {}
        email = (data.get('email') or '').strip().lower()
        if not ModelValidator.validate_email(email):
            return jsonify({
                'success': False,
                'message': 'Validation failed',
                'errors': {'email': ['Valid email is required']}
            }), 400

        try:
            identity.send_password_reset_email(email)
        except AuthenticationError as e:
            return jsonify({
                'success': False,
                'message': 'Failed to send password reset email',
                'errors': {'general': [str(e)]}
            }), 400

        return jsonify({
            'success': True,
            'data': None,
            'message': 'Password reset email sent'
        })

    @auth_bp.route('/logout', methods=['POST'])
    @token_required
    def logout(console):
        registry.remove(console.owner_id)
        return jsonify({
            'success': True,
            'data': None,
            'message': 'Logged out successfully'
        })

    return auth_bp
