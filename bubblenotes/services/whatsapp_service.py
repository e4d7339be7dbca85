"""
WhatsApp pairing and sticker sending
Owns the single WhatsApp session: pairing via QR code, the 30-second
initialisation deadline, session files, and sending stickers to oneself.
"""

import asyncio
import base64
import binascii
import random
import shutil
import string
import time
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Dict, Any, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from bubblenotes.bot.whatsapp_client import WhatsAppDriver
from bubblenotes.utils.errors import WhatsAppError, WhatsAppNotReadyError
from bubblenotes.utils.logger import logger

SESSION_DIR_PREFIX = "whatsapp-session"
TIMEOUT_MESSAGE = "Connection timeout. Try clearing session and reconnecting."


class WhatsAppStatus(BaseModel):
    """Status as reported to clients"""

    is_ready: bool = False
    has_qr: bool = Field(False, alias="hasQR")
    phone_number: Optional[str] = None
    error: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


def _new_session_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"bubble-session-{int(time.time() * 1000)}-{suffix}"


def _strip_data_url(media: str) -> str:
    # "data:image/webp;base64,AAAA" -> "AAAA"
    if media.startswith("data:"):
        return media.split(",", 1)[1] if "," in media else ""
    return media


class WhatsAppService:
    """WhatsApp session manager"""

    def __init__(
        self,
        driver: WhatsAppDriver,
        session_root: str = ".",
        init_timeout: float = 30.0,
        logout_grace: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            driver: automation driver
            session_root: directory holding whatsapp-session* folders
            init_timeout: seconds to wait for a QR code or ready signal
            logout_grace: seconds to wait between logout and teardown
            clock: monotonic clock
        """
        self.driver = driver
        self.session_root = Path(session_root)
        self.init_timeout = init_timeout
        self.logout_grace = logout_grace
        self.clock = clock

        self.session_id: Optional[str] = None
        self._reset_state()
        self.error: Optional[str] = None

    def _reset_state(self) -> None:
        self.is_ready = False
        self.qr_code: Optional[str] = None
        self.phone_number: Optional[str] = None
        self._init_deadline: Optional[float] = None

    def clear_session_dirs(self) -> int:
        """
        Delete every whatsapp-session* directory under the session root.

        Returns:
            number of directories removed
        """
        if not self.session_root.exists():
            return 0
        removed = 0
        for path in self.session_root.iterdir():
            if path.is_dir() and path.name.startswith(SESSION_DIR_PREFIX):
                try:
                    shutil.rmtree(path)
                    removed += 1
                    logger.info(f"Session directory cleared: {path.name}")
                except OSError as e:
                    logger.warning(f"Could not clear session directory {path.name}: {e}")
        return removed

    async def _destroy_session(self) -> None:
        if self.session_id is None:
            return
        try:
            await self.driver.destroy(self.session_id)
        except WhatsAppError as e:
            logger.warning(f"Error destroying WhatsApp session: {e}")
        self.session_id = None

    async def init(self) -> str:
        """
        Start pairing: tear down any previous session, wipe the session
        files, start a fresh session and arm the initialisation deadline.

        Returns:
            the new session id

        Raises:
            WhatsAppError: the driver could not start the session
        """
        await self._destroy_session()
        self._reset_state()
        self.error = None
        self.clear_session_dirs()

        session_id = _new_session_id()
        data_path = self.session_root / f"{SESSION_DIR_PREFIX}-{session_id}"
        try:
            await self.driver.start(session_id, str(data_path))
        except WhatsAppError as e:
            logger.error(f"Failed to initialize WhatsApp: {e}")
            self.error = "Failed to initialize WhatsApp"
            raise

        self.session_id = session_id
        self._init_deadline = self.clock() + self.init_timeout
        logger.info("WhatsApp initialization started")
        return session_id

    async def refresh(self) -> WhatsAppStatus:
        """
        Pull the session state from the driver and apply the deadline.

        Returns:
            the current status
        """
        if self.session_id is None:
            return self.status()

        try:
            state = await self.driver.state(self.session_id)
        except WhatsAppError as e:
            logger.warning(f"Could not read WhatsApp state: {e}")
            return self.status()

        if state.ready:
            if not self.is_ready:
                logger.info("WhatsApp client is ready")
            self.is_ready = True
            self.qr_code = None
            self.phone_number = f"+{state.phone_number.lstrip('+')}" if state.phone_number else None
            self._init_deadline = None
        elif state.qr:
            self.is_ready = False
            self.qr_code = state.qr
            self._init_deadline = None
        else:
            # Session dropped (logout, disconnect) or still booting
            self.is_ready = False
            self.qr_code = None
            self.phone_number = None

        if self._init_deadline is not None and self.clock() >= self._init_deadline:
            logger.warning("WhatsApp initialization timeout")
            await self._destroy_session()
            self._reset_state()
            self.error = TIMEOUT_MESSAGE

        return self.status()

    def status(self) -> WhatsAppStatus:
        return WhatsAppStatus(
            is_ready=self.is_ready,
            has_qr=bool(self.qr_code),
            phone_number=self.phone_number,
            error=self.error,
        )

    def qr(self) -> Optional[str]:
        return self.qr_code

    async def disconnect(self) -> None:
        """Log out, tear the session down and wipe the session files"""
        if self.session_id is not None:
            try:
                await self.driver.logout(self.session_id)
                logger.info("WhatsApp client logged out")
                await asyncio.sleep(self.logout_grace)
            except WhatsAppError as e:
                logger.warning(f"Could not logout properly: {e}")
            await self._destroy_session()

        self._reset_state()
        self.error = None
        self.clear_session_dirs()

    async def send_sticker(self, media: str) -> None:
        """
        Send a WebP sticker to the linked account itself.

        Args:
            media: base64 WebP data, optionally as a data: URL

        Raises:
            WhatsAppNotReadyError: no ready session
            ValueError: the payload is not base64
            WhatsAppError: the driver failed to send
        """
        if self.session_id is None or not self.is_ready:
            raise WhatsAppNotReadyError("WhatsApp is not connected")

        payload = _strip_data_url(media)
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("Sticker media must be base64 encoded") from e
        if not payload:
            raise ValueError("Sticker media is empty")

        await self.driver.send_sticker_to_self(self.session_id, payload)
        logger.info("Sticker sent to self")

    async def close(self) -> None:
        await self._destroy_session()


class PairingMonitor:
    """
    Polls the WhatsApp status on a fixed interval while pairing.

    Emits "status" on every poll, "qr" when a QR code appears, "ready" when
    the session becomes ready (the pairing UI should close), and "timeout"
    when neither happened within the deadline. Stops after ready or timeout.
    """

    def __init__(
        self,
        fetch_status: Callable[[], Awaitable[WhatsAppStatus]],
        interval: float = 2.0,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetch_status = fetch_status
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self.started_at = clock()
        self.finished = False
        self._was_ready = False
        self._had_qr = False
        self._seen_signal = False

    async def poll_once(self) -> List[Dict[str, Any]]:
        status = await self.fetch_status()
        data = status.model_dump(by_alias=True)
        events: List[Dict[str, Any]] = [{"event": "status", "data": data}]

        if status.has_qr and not self._had_qr:
            events.append({"event": "qr", "data": data})
        self._had_qr = status.has_qr

        if status.is_ready or status.has_qr:
            self._seen_signal = True

        if status.is_ready and not self._was_ready:
            events.append({"event": "ready", "data": data})
            self.finished = True
        self._was_ready = status.is_ready

        if not self._seen_signal and self.clock() - self.started_at >= self.timeout:
            events.append({"event": "timeout", "data": {**data, "error": status.error or TIMEOUT_MESSAGE}})
            self.finished = True

        return events

    async def events(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            for event in await self.poll_once():
                yield event
            if self.finished:
                return
            await asyncio.sleep(self.interval)
