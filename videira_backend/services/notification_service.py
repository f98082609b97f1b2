"""
User notifications for the church console.

Everything here is fire-and-forget: a notification that cannot be delivered
is logged and dropped, never raised to the caller.
"""
import logging
from typing import Any, Dict, Optional

from utils.formatting import format_currency

logger = logging.getLogger(__name__)

GRANTED = 'granted'
DENIED = 'denied'


class NotificationService:
    """Sends console notifications through Firebase Cloud Messaging topics"""

    def __init__(self, firebase_service=None, topic: Optional[str] = None):
        self.firebase_service = firebase_service
        self.topic = topic
        self.permission = 'default'

    def request_permission(self) -> str:
        if self.firebase_service is None or not self.firebase_service.is_available:
            logger.warning("Push notifications are not supported in this deployment")
            self.permission = DENIED
        elif not self.topic:
            logger.warning("No notification topic configured")
            self.permission = DENIED
        else:
            self.permission = GRANTED
        return self.permission

    def send(self, options: Dict[str, Any]) -> bool:
        """
        Send one notification.

        Args:
            options: {'title', 'body', 'tag'?, 'requireInteraction'?}

        Returns:
            bool: True if the notification was handed to FCM
        """
        try:
            if self.permission != GRANTED and self.request_permission() != GRANTED:
                logger.warning("Notification permission denied")
                return False

            return self.firebase_service.send_topic_notification(
                self.topic,
                options['title'],
                options['body'],
                data={'tag': options.get('tag', '')},
                tag=options.get('tag'),
                require_interaction=bool(options.get('requireInteraction', False))
            )
        except Exception as e:
            logger.warning(f"Failed to send notification: {e}")
            return False

    def notify_new_income(self, amount, category: str) -> bool:
        return self.send({
            'title': 'Nova Receita Registrada',
            'body': f"{category}: {format_currency(amount)}",
            'tag': 'receita'
        })

    def notify_new_expense(self, amount, category: str) -> bool:
        return self.send({
            'title': 'Nova Despesa Registrada',
            'body': f"{category}: {format_currency(amount)}",
            'tag': 'despesa'
        })

    def notify_overdue_expense(self, description: str, amount) -> bool:
        return self.send({
            'title': 'Despesa Vencida!',
            'body': f"{description}: {format_currency(amount)}",
            'tag': 'despesa-vencida',
            'requireInteraction': True
        })

    def notify_backup_completed(self) -> bool:
        return self.send({
            'title': 'Backup Realizado',
            'body': 'Backup automático dos dados foi concluído com sucesso',
            'tag': 'backup'
        })
