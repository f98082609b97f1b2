"""
Firebase Admin credentials.
One service account backs Authentication, Cloud Messaging and, when selected,
Firestore.
"""
import json
import os
import logging

import firebase_admin
from firebase_admin import credentials

logger = logging.getLogger(__name__)

LOCAL_CREDENTIALS_FILE = 'firebase-adminsdk.json'


class CredentialManager:
    """
    Looks for a service account in this order: FIREBASE_KEY_PATH (mounted
    secret file), FIREBASE_CREDENTIALS_JSON (inline JSON), then
    firebase-adminsdk.json in the working directory.
    """

    def __init__(self, environ=None):
        self.environ = os.environ if environ is None else environ
        self.firebase_app = None
        self.source = None
        self._initialize_firebase()

    def _certificate_source(self):
        key_path = self.environ.get('FIREBASE_KEY_PATH')
        if key_path and os.path.exists(key_path):
            return key_path, f"secret file {key_path}"

        inline = self.environ.get('FIREBASE_CREDENTIALS_JSON')
        if inline:
            return json.loads(inline), 'FIREBASE_CREDENTIALS_JSON'

        if os.path.exists(LOCAL_CREDENTIALS_FILE):
            return LOCAL_CREDENTIALS_FILE, f"local file {LOCAL_CREDENTIALS_FILE}"
        return None, None

    def _initialize_firebase(self):
        if firebase_admin._apps:
            self.firebase_app = firebase_admin.get_app()
            self.source = 'existing app'
            return

        try:
            certificate, source = self._certificate_source()
            if certificate is None:
                logger.warning("No Firebase credentials found; sign-in and push notifications are disabled")
                return
            self.firebase_app = firebase_admin.initialize_app(credentials.Certificate(certificate))
            self.source = source
            logger.info(f"Firebase initialized from {source}")
        except (ValueError, IOError) as e:
            # Bad JSON or an unreadable certificate; the API still serves health checks
            logger.error(f"Failed to initialize Firebase: {e}")

    def get_firebase_app(self):
        return self.firebase_app

    def is_firebase_available(self):
        return self.firebase_app is not None
