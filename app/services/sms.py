from __future__ import annotations

import asyncio
import logging
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from ..config import Settings, get_settings
from ..domain.errors import NotificationError

logger = logging.getLogger(__name__)


class TwilioSMSService:
    """Thin wrapper around the Twilio REST client with async-friendly, time-bounded send."""

    def __init__(self, client: Client, from_number: str, *, timeout_sec: float) -> None:
        self._client = client
        self._from_number = from_number
        self._timeout_sec = timeout_sec

    async def send(self, phone_number: str, message: str) -> None:
        """
        Send SMS to the provided destination number. Raises NotificationError on failure.

        `wait_for` only stops waiting: the executor thread keeps running the blocking
        Twilio call, so a message can still go out after the caller has rolled back.
        The client built by `build_twilio_client` carries the same timeout on its HTTP
        session, which bounds how long that thread can linger.
        """
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: self._client.messages.create(
                        from_=self._from_number,
                        to=phone_number,
                        body=message,
                    ),
                ),
                timeout=self._timeout_sec,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Twilio SMS send timed out after %ss", self._timeout_sec)
            raise NotificationError("sms send timed out") from exc
        except TwilioException as exc:
            logger.warning("Twilio SMS send failed: %s", exc)
            raise NotificationError(str(exc)) from exc


class LoggingSMSService:
    """DEV sender: logs the message instead of delivering it."""

    async def send(self, phone_number: str, message: str) -> None:
        logger.debug("[DEV] SMS to %s: %s", phone_number, message)


def build_twilio_client(settings: Settings) -> Client:
    return Client(
        settings.TWILIO_ACCOUNT_SID,
        settings.TWILIO_AUTH_TOKEN,
        http_client=TwilioHttpClient(timeout=settings.SMS_SEND_TIMEOUT_SEC),
    )


_sender: Optional[TwilioSMSService | LoggingSMSService] = None


def get_sms_sender() -> TwilioSMSService | LoggingSMSService:
    global _sender
    if _sender is not None:
        return _sender

    settings = get_settings()
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_FROM_NUMBER:
        _sender = TwilioSMSService(
            build_twilio_client(settings),
            settings.TWILIO_FROM_NUMBER,
            timeout_sec=settings.SMS_SEND_TIMEOUT_SEC,
        )
    else:
        missing = [
            key
            for key, value in [
                ("TWILIO_ACCOUNT_SID", settings.TWILIO_ACCOUNT_SID),
                ("TWILIO_AUTH_TOKEN", settings.TWILIO_AUTH_TOKEN),
                ("TWILIO_FROM_NUMBER", settings.TWILIO_FROM_NUMBER),
            ]
            if not value
        ]
        logger.info("Twilio SMS disabled; missing settings: %s", ", ".join(missing))
        _sender = LoggingSMSService()
    return _sender
