"""
Firebase Cloud Messaging client helpers.

Used API:
- messaging.send_each_for_multicast(MulticastMessage) -> BatchResponse
  (success_count / failure_count)

The Firebase app is initialized once at startup from `FCM_CREDENTIALS`
(service-account JSON) or `FCM_CREDENTIALS_FILE`. Without credentials push
delivery stays disabled and every send raises `FcmError`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

from . import settings

logger = logging.getLogger(__name__)

_app: firebase_admin.App | None = None


# FCM failures are explicit and separable from other runtime errors.
class FcmError(RuntimeError):
    pass


@dataclass(frozen=True)
class MulticastResult:
    success_count: int
    failure_count: int


def _load_credentials() -> credentials.Certificate | None:
    raw = settings.fcm_credentials_json()
    if raw:
        try:
            return credentials.Certificate(json.loads(raw))
        except (ValueError, TypeError) as exc:
            logger.error("fcm_credentials_invalid source=env error=%s", exc)
            return None

    path = settings.fcm_credentials_file()
    if path.is_file():
        try:
            return credentials.Certificate(str(path))
        except (ValueError, OSError) as exc:
            logger.error("fcm_credentials_invalid source=file path=%s error=%s", path, exc)
            return None

    return None


def init_app() -> bool:
    """
    Initialize the Firebase app. Returns whether push delivery is enabled.
    """
    global _app
    if _app is not None:
        return True

    cred = _load_credentials()
    if cred is None:
        logger.warning("fcm_disabled reason=no_credentials")
        return False

    try:
        _app = firebase_admin.initialize_app(cred)
    except ValueError as exc:
        logger.error("fcm_init_failed error=%s", exc)
        return False

    logger.info("fcm_ready project=%s", _app.project_id)
    return True


def close_app() -> None:
    global _app
    if _app is None:
        return
    firebase_admin.delete_app(_app)
    _app = None


def is_enabled() -> bool:
    return _app is not None


def build_message(tokens: list[str], data: dict[str, str]) -> messaging.MulticastMessage:
    return messaging.MulticastMessage(
        tokens=tokens,
        data=data,
        android=messaging.AndroidConfig(priority="high"),
        apns=messaging.APNSConfig(headers={"apns-priority": "10"}),
    )


async def send_multicast(tokens: list[str], data: dict[str, str]) -> MulticastResult:
    """
    Deliver one data message to up to 500 tokens.
    """
    if _app is None:
        raise FcmError("Firebase is not initialized; push delivery is disabled.")

    message = build_message(tokens, data)
    try:
        # The Admin SDK is blocking; keep it off the event loop.
        response = await asyncio.to_thread(messaging.send_each_for_multicast, message, app=_app)
    except (firebase_exceptions.FirebaseError, ValueError) as exc:
        raise FcmError(f"FCM multicast failed: {exc}") from exc

    return MulticastResult(
        success_count=int(response.success_count),
        failure_count=int(response.failure_count),
    )
