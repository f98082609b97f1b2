from flask import Flask, request, jsonify, g
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from datetime import date, datetime
from bson import ObjectId
from functools import wraps
import logging

from config import environment
from config.credentials import CredentialManager

# Import blueprints
from blueprints.auth import init_auth_blueprint
from blueprints.expenses import init_expenses_blueprint
from blueprints.income import init_income_blueprint
from blueprints.members import init_members_blueprint
from blueprints.categories import init_categories_blueprint
from blueprints.church_config import init_church_config_blueprint
from blueprints.birthdays import init_birthdays_blueprint
from blueprints.backup import init_backup_blueprint
from blueprints.reports import init_reports_blueprint

# Import database models
from models import DatabaseInitializer

from services.document_store import FirestoreDocumentStore, MongoDocumentStore
from services.firebase_service import FirebaseService
from services.identity_provider import FirebaseIdentityProvider
from services.notification_service import NotificationService
from utils.backup_service import BackupService
from utils.birthdays import BirthdayService
from utils.console import ConsoleRegistry
from utils.errors import (
    AuthenticationError, AuthRequiredError, NotFoundError, PersistenceError, QueryError, ValidationError
)
from utils.sync_scheduler import SyncScheduler

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
)
logger = logging.getLogger(__name__)


def serialize_doc(doc):
    if not doc:
        return doc

    # Make a copy to avoid modifying the original
    if isinstance(doc, dict):
        doc = doc.copy()

    # Handle _id field
    if '_id' in doc:
        doc['id'] = str(doc['_id'])
        del doc['_id']

    for key, value in list(doc.items()):  # Use list() to avoid dict changed size during iteration
        doc[key] = _serialize_value(value)
    return doc


def _serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat() + ('Z' if value.tzinfo is None else '')
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value


def _build_store(credential_manager):
    if environment.DOCUMENT_STORE == 'firestore':
        logger.info("Using Firestore document store")
        return FirestoreDocumentStore(credential_manager.get_firebase_app())

    logger.info(f"Using MongoDB document store: {environment.MONGO_DB_NAME}")
    store = MongoDocumentStore.from_uri(environment.MONGO_URI, environment.MONGO_DB_NAME)

    # Initialize database collections and indexes
    db_results = DatabaseInitializer(store.db).initialize_collections()
    if db_results['created']:
        logger.info(f"Created {len(db_results['created'])} new collections")
    if db_results['existing']:
        logger.info(f"Verified {len(db_results['existing'])} existing collections")
    if db_results['errors']:
        logger.warning(f"{len(db_results['errors'])} errors during database initialization")
    return store


def create_app(store=None, identity=None, notifier=None, start_scheduler=None, config=None):
    """
    Build the Flask app.

    Every collaborator can be injected; whatever is missing is built from
    the environment (Firebase credentials, MongoDB or Firestore).
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = environment.SECRET_KEY
    if config:
        app.config.update(config)

    # Initialize extensions
    CORS(app, origins=environment.CORS_ORIGINS.split(','))
    limiter = Limiter(
        app=app,
        key_func=get_remote_address,
        default_limits=["50000 per day", "5000 per hour"],
        storage_uri="memory://",
    )

    credential_manager = None
    if store is None or identity is None or notifier is None:
        credential_manager = CredentialManager()
    if store is None:
        store = _build_store(credential_manager)
    if identity is None:
        identity = FirebaseIdentityProvider(environment.FIREBASE_WEB_API_KEY, credential_manager.get_firebase_app())
    if notifier is None:
        notifier = NotificationService(FirebaseService(credential_manager), environment.NOTIFICATION_TOPIC)

    birthday_service = BirthdayService(store, notifier)
    backup_service = BackupService(store, environment.BACKUP_DIR, environment.MAX_LOCAL_BACKUPS, notifier)
    scheduler = SyncScheduler(backup_service, birthday_service)
    registry = ConsoleRegistry(
        store, birthday_service, backup_service,
        notifier=notifier,
        scheduler=scheduler,
        reconcile_delay=environment.RECONCILE_DELAY_SECONDS,
        auto_backup_interval_hours=environment.AUTO_BACKUP_INTERVAL_HOURS,
        birthday_check_hour=environment.BIRTHDAY_CHECK_HOUR
    )

    app.extensions['videira'] = {
        'store': store,
        'identity': identity,
        'notifier': notifier,
        'registry': registry,
        'scheduler': scheduler
    }

    def token_required(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            token = request.headers.get('Authorization')
            if not token:
                return jsonify({'success': False, 'message': 'Token is missing'}), 401

            if token.startswith('Bearer '):
                token = token[7:]
            try:
                current_user = identity.verify_id_token(token)
            except AuthenticationError as e:
                return jsonify({
                    'success': False,
                    'message': 'Invalid token',
                    'errors': {'general': [str(e)]}
                }), 401

            # Store user ID in g for request logging
            g.current_user_id = current_user['uid']
            return f(registry.get(current_user), *args, **kwargs)
        return decorated

    auth_blueprint = init_auth_blueprint(identity, registry, token_required)
    expenses_blueprint = init_expenses_blueprint(token_required, serialize_doc)
    income_blueprint = init_income_blueprint(token_required, serialize_doc)
    members_blueprint = init_members_blueprint(token_required, serialize_doc)
    categories_blueprint = init_categories_blueprint(token_required, serialize_doc)
    church_config_blueprint = init_church_config_blueprint(token_required, serialize_doc)
    birthdays_blueprint = init_birthdays_blueprint(token_required, serialize_doc)
    backup_blueprint = init_backup_blueprint(token_required)
    reports_blueprint = init_reports_blueprint(token_required, environment.CHURCH_NAME)

    # Credential endpoints get a tighter limit
    limiter.limit("30 per minute")(auth_blueprint)

    app.register_blueprint(auth_blueprint)
    app.register_blueprint(expenses_blueprint)
    app.register_blueprint(income_blueprint)
    app.register_blueprint(members_blueprint)
    app.register_blueprint(categories_blueprint)
    app.register_blueprint(church_config_blueprint)
    app.register_blueprint(birthdays_blueprint)
    app.register_blueprint(backup_blueprint)
    app.register_blueprint(reports_blueprint)

    # Health check endpoint
    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({
            'success': True,
            'message': 'Videira Backend is running',
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'version': '1.0.0',
            'scheduler': scheduler.get_scheduler_status()
        })

    # Error handlers
    @app.errorhandler(ValidationError)
    def validation_error(error):
        return jsonify({
            'success': False,
            'message': str(error),
            'errors': error.errors
        }), 400

    @app.errorhandler(AuthRequiredError)
    @app.errorhandler(AuthenticationError)
    def unauthorized(error):
        return jsonify({
            'success': False,
            'message': 'Authentication required',
            'errors': {'general': [str(error)]}
        }), 401

    @app.errorhandler(NotFoundError)
    def record_not_found(error):
        return jsonify({
            'success': False,
            'message': 'Record not found',
            'errors': {'general': [str(error)]}
        }), 404

    @app.errorhandler(QueryError)
    @app.errorhandler(PersistenceError)
    def store_error(error):
        logger.error(f"Document store error: {error}")
        return jsonify({
            'success': False,
            'message': 'Failed to reach the document store',
            'errors': {'general': [str(error)]}
        }), 500

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'message': 'Endpoint not found',
            'error': 'The requested resource was not found on this server.'
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({
            'success': False,
            'message': 'Internal server error',
            'error': 'An unexpected error occurred. Please try again later.'
        }), 500

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({
            'success': False,
            'message': 'Bad request',
            'error': 'The request could not be understood by the server.'
        }), 400

    if start_scheduler is None:
        start_scheduler = environment.ENABLE_SCHEDULER
    if start_scheduler:
        try:
            scheduler.start()
        except Exception as e:
            logger.error(f"Scheduler initialization error (non-fatal): {str(e)}")

    return app
