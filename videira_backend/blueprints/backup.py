from flask import Blueprint, request, jsonify, Response

from models import EXPENSES, INCOME, MEMBERS
from utils.backup_service import download_backup, parse_backup


def init_backup_blueprint(token_required):
    """Initialize the backup blueprint"""
    backup_bp = Blueprint('backup', __name__, url_prefix='/backup')

    @backup_bp.route('/download', methods=['GET'])
    @token_required
    def download(console):
        backup = console.backups.create_backup(console.owner_id)
        filename, payload = download_backup(backup)
        return Response(
            payload,
            mimetype='application/json',
            headers={'Content-Disposition': f'attachment; filename={filename}'}
        )

    @backup_bp.route('/restore/validate', methods=['POST'])
    @token_required
    def validate_restore(console):
        uploaded = request.files.get('file')
        raw = uploaded.read() if uploaded else (request.get_json(silent=True) or request.get_data())
        backup = parse_backup(raw)
        return jsonify({
            'success': True,
            'data': {
                'timestamp': backup['timestamp'],
                'receitas': len(backup[INCOME]),
                'despesas': len(backup[EXPENSES]),
                'membros': len(backup.get(MEMBERS, []))
            },
            'message': 'Backup file is valid'
        })

    @backup_bp.route('/local', methods=['GET'])
    @token_required
    def list_local(console):
        local_store = console.backups.local_store(console.owner_id)
        backups = local_store.list() if local_store else []
        return jsonify({
            'success': True,
            'data': {'backups': backups, 'total': len(backups)},
            'message': 'Local backups retrieved successfully'
        })

    @backup_bp.route('/local/<backup_id>', methods=['GET'])
    @token_required
    def download_local(console, backup_id):
        local_store = console.backups.local_store(console.owner_id)
        backup = local_store.load(backup_id) if local_store else None
        if backup is None:
            return jsonify({'success': False, 'message': 'Backup not found'}), 404
        filename, payload = download_backup(backup)
        return Response(
            payload,
            mimetype='application/json',
            headers={'Content-Disposition': f'attachment; filename={filename}'}
        )

    @backup_bp.route('/local/<backup_id>', methods=['DELETE'])
    @token_required
    def delete_local(console, backup_id):
        local_store = console.backups.local_store(console.owner_id)
        if not local_store or not local_store.delete(backup_id):
            return jsonify({'success': False, 'message': 'Backup not found'}), 404
        return jsonify({
            'success': True,
            'data': {'id': backup_id},
            'message': 'Backup deleted successfully'
        })

    @backup_bp.route('/run', methods=['POST'])
    @token_required
    def run_backup(console):
        backup_id = console.backups.perform_auto_backup(console.owner_id)
        if backup_id is None and console.backups.backup_dir:
            return jsonify({
                'success': False,
                'message': 'Backup failed',
                'errors': {'general': ['Erro ao realizar backup']}
            }), 500
        return jsonify({
            'success': True,
            'data': {'id': backup_id},
            'message': 'Backup completed successfully'
        })

    return backup_bp
