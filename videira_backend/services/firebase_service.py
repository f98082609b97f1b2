"""
Cloud Messaging sender for the church console.
Web push messages go either to one device token or to a topic every console
subscribes to.
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class FirebaseService:

    def __init__(self, credential_manager=None):
        self.credential_manager = credential_manager
        self.is_available = bool(credential_manager and credential_manager.is_firebase_available())
        if not self.is_available:
            logger.warning("Cloud Messaging disabled: no Firebase app")

    @staticmethod
    def build_message(title: str, body: str, data: Optional[Dict[str, Any]] = None,
                      tag: Optional[str] = None, require_interaction: bool = False,
                      token: Optional[str] = None, topic: Optional[str] = None):
        """Web push message; FCM only accepts string values in `data`"""
        from firebase_admin import messaging

        if bool(token) == bool(topic):
            raise ValueError("Exactly one of token or topic is required")

        return messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(
                    title=title,
                    body=body,
                    icon='/favicon.ico',
                    badge='/favicon.ico',
                    tag=tag,
                    require_interaction=require_interaction
                )
            ),
            data={k: str(v) for k, v in (data or {}).items()},
            token=token,
            topic=topic
        )

    def send(self, title: str, body: str, data: Optional[Dict[str, Any]] = None,
             tag: Optional[str] = None, require_interaction: bool = False,
             token: Optional[str] = None, topic: Optional[str] = None) -> bool:
        """
        Deliver one web push message.

        Returns:
            bool: False when FCM is unavailable or rejected the message
        """
        target = f"topic '{topic}'" if topic else 'device'
        if not self.is_available:
            logger.warning(f"Skipping notification to {target}: Cloud Messaging disabled")
            return False

        try:
            from firebase_admin import messaging

            message_id = messaging.send(self.build_message(
                title, body, data, tag, require_interaction, token=token, topic=topic
            ))
            logger.info(f"Notification '{title}' sent to {target}: {message_id}")
            return True
        except Exception as e:
            logger.error(f"Notification '{title}' to {target} failed: {e}")
            return False

    def send_topic_notification(self, topic: str, title: str, body: str, **options) -> bool:
        return self.send(title, body, topic=topic, **options)

    def send_device_notification(self, token: str, title: str, body: str, **options) -> bool:
        return self.send(title, body, token=token, **options)
