"""
Error taxonomy shared by the sync layer, the services and the HTTP blueprints.
"""
from typing import Dict, List, Optional


class SyncError(Exception):
    """Base class for every error raised by the sync layer"""


class PersistenceError(SyncError):
    """A remote write (insert, update, delete, set) failed"""


class AuthRequiredError(PersistenceError):
    """A mutation was attempted with no authenticated principal"""

    def __init__(self, message: str = 'Usuário não autenticado'):
        super().__init__(message)


class QueryError(SyncError):
    """A remote read failed"""


class NotFoundError(SyncError):
    """A document addressed by id does not exist"""


class AuthenticationError(SyncError):
    """The identity provider rejected the credentials or token"""


class ValidationError(SyncError):
    """
    Form-level validation failure.

    Carries the per-field messages in the same shape the HTTP layer
    returns them: {'field': ['message', ...]}
    """

    def __init__(self, errors: Optional[Dict[str, List[str]]] = None, message: str = 'Validation failed'):
        super().__init__(message)
        self.errors = errors or {}
