import os
from typing import Iterable, Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from config import get_settings
from utils.logger import get_logger

logger = get_logger("push")

# Initialize Firebase Admin once per process
_initialized = False


def initialize_firebase_admin():
    """Initialize the Firebase Admin SDK"""
    global _initialized
    if _initialized:
        return
    settings = get_settings()
    try:
        cred_path = settings.firebase_credentials_path or os.path.join(
            os.path.dirname(__file__), "..", "serviceAccountKey.json"
        )

        if os.path.exists(cred_path):
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
            _initialized = True
            logger.info("Firebase Admin initialized with %s", cred_path)
        elif os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
            firebase_admin.initialize_app()
            _initialized = True
            logger.info("Firebase Admin initialized from GOOGLE_APPLICATION_CREDENTIALS")
        else:
            logger.warning("Firebase credentials not found at %s; push notifications disabled", cred_path)
    except (ValueError, OSError) as e:
        logger.warning("Error initializing Firebase Admin: %s", e)
        _initialized = False


def _build_message(title: str, body: str, data: Optional[dict], **target) -> dict:
    return dict(
        notification=messaging.Notification(title=title, body=body),
        data={k: str(v) for k, v in (data or {}).items()},
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(aps=messaging.Aps(badge=1, sound="default")),
        ),
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                sound="default",
                channel_id="high_importance_channel",
            ),
        ),
        **target,
    )


def send_notification(fcm_token: str, title: str, body: str, data: Optional[dict] = None) -> bool:
    """Send a push notification to one device. Never raises."""
    if not get_settings().push_notifications_enabled or not fcm_token:
        return False
    initialize_firebase_admin()
    if not _initialized:
        return False

    try:
        response = messaging.send(messaging.Message(**_build_message(title, body, data, token=fcm_token)))
        logger.info("Notification sent: %s", response)
        return True
    except (exceptions.FirebaseError, ValueError) as e:
        logger.warning("Error sending notification: %s", e)
        return False


def send_notification_to_multiple(fcm_tokens: list[str], title: str, body: str, data: Optional[dict] = None) -> dict:
    """Send a notification to several devices"""
    if not get_settings().push_notifications_enabled or not fcm_tokens:
        return {"success": 0, "failure": len(fcm_tokens) if fcm_tokens else 0}
    initialize_firebase_admin()
    if not _initialized:
        return {"success": 0, "failure": len(fcm_tokens)}

    try:
        message = messaging.MulticastMessage(**_build_message(title, body, data, tokens=fcm_tokens))
        response = messaging.send_each_for_multicast(message)
        return {
            "success": response.success_count,
            "failure": response.failure_count,
        }
    except (exceptions.FirebaseError, ValueError) as e:
        logger.warning("Error sending multicast notification: %s", e)
        return {"success": 0, "failure": len(fcm_tokens)}


def notify_users(users: Iterable, setting: str, title: str, body: str, data: Optional[dict] = None) -> dict:
    """Push to every user that has a device token and the given notification setting on."""
    tokens = [u.fcm_token for u in users if u.fcm_token and u.wants_notification(setting)]
    if not tokens:
        return {"success": 0, "failure": 0}
    return send_notification_to_multiple(tokens, title, body, data)
