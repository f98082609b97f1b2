"""
Identity provider boundary.

Passwords never touch this backend's database: sign-in, sign-up and password
reset go to Firebase Authentication (Identity Toolkit REST API) and API
requests carry a Firebase ID token verified with firebase_admin.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import requests

from utils.errors import AuthenticationError

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = 'https://identitytoolkit.googleapis.com/v1/accounts:{endpoint}'


class FirebaseIdentityProvider:
    """Firebase Authentication client for email/password accounts"""

    def __init__(self, api_key: str, firebase_app=None, timeout: int = 10):
        self.api_key = api_key
        self.firebase_app = firebase_app
        self.timeout = timeout

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise AuthenticationError('Firebase web API key is not configured')
        try:
            response = requests.post(
                IDENTITY_TOOLKIT_URL.format(endpoint=endpoint),
                params={'key': self.api_key},
                json=payload,
                timeout=self.timeout
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Identity Toolkit request '{endpoint}' failed: {e}")
            raise AuthenticationError('Authentication service unavailable') from e

        if response.status_code != 200:
            message = data.get('error', {}).get('message', 'Authentication failed')
            logger.warning(f"Identity Toolkit '{endpoint}' rejected request: {message}")
            raise AuthenticationError(message)
        return data

    @staticmethod
    def _to_user(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'uid': data['localId'],
            'email': data.get('email'),
            'displayName': data.get('displayName', ''),
            'idToken': data.get('idToken'),
            'refreshToken': data.get('refreshToken')
        }

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        data = self._post('signInWithPassword', {
            'email': email,
            'password': password,
            'returnSecureToken': True
        })
        logger.info(f"User signed in: {data['localId']}")
        return self._to_user(data)

    def sign_up(self, email: str, password: str, display_name: str) -> Dict[str, Any]:
        data = self._post('signUp', {
            'email': email,
            'password': password,
            'returnSecureToken': True
        })
        if display_name:
            profile = self._post('update', {
                'idToken': data['idToken'],
                'displayName': display_name,
                'returnSecureToken': True
            })
            data['displayName'] = profile.get('displayName', display_name)
            data['idToken'] = profile.get('idToken', data['idToken'])
        logger.info(f"User registered: {data['localId']}")
        return self._to_user(data)

    def send_password_reset_email(self, email: str):
        self._post('sendOobCode', {'requestType': 'PASSWORD_RESET', 'email': email})
        logger.info(f"Password reset email requested for {email}")

    def verify_id_token(self, id_token: str) -> Dict[str, Any]:
        from firebase_admin import auth

        try:
            decoded = auth.verify_id_token(id_token, app=self.firebase_app)
        except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, ValueError) as e:
            raise AuthenticationError(f'Invalid token: {e}') from e
        return {
            'uid': decoded['uid'],
            'email': decoded.get('email'),
            'displayName': decoded.get('name', ''),
            'idToken': id_token
        }


class AuthSession:
    """
    Authentication state of one signed-in console.

    Collections subscribe to it and refetch or clear themselves whenever the
    current user changes.
    """

    def __init__(self, identity_provider=None, user: Optional[Dict[str, Any]] = None):
        self.identity = identity_provider
        self._user = user
        self._listeners: List[Callable] = []
        self._lock = threading.Lock()

    @property
    def current_user(self) -> Optional[Dict[str, Any]]:
        return self._user

    @property
    def owner_id(self) -> Optional[str]:
        return self._user['uid'] if self._user else None

    def subscribe(self, listener: Callable[[Optional[Dict[str, Any]]], None]) -> Callable[[], None]:
        """Register an auth-state listener; it is called at once with the current user"""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        listener(self._user)
        return unsubscribe

    def _set_user(self, user: Optional[Dict[str, Any]]):
        self._user = user
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(user)
            except Exception as e:
                logger.error(f"Auth state listener failed: {e}")

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        user = self.identity.sign_in(email, password)
        self._set_user(user)
        return user

    def sign_up(self, email: str, password: str, display_name: str) -> Dict[str, Any]:
        user = self.identity.sign_up(email, password, display_name)
        self._set_user(user)
        return user

    def restore(self, user: Dict[str, Any]):
        """Adopt a user whose token was verified elsewhere"""
        if self.owner_id == user.get('uid'):
            self._user = user
            return
        self._set_user(user)

    def sign_out(self):
        self._set_user(None)
