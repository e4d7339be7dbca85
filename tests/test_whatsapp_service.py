import asyncio

import pytest

from bubblenotes.bot.whatsapp_client import DriverState
from bubblenotes.services.whatsapp_service import (
    TIMEOUT_MESSAGE,
    PairingMonitor,
    WhatsAppService,
    WhatsAppStatus,
)
from bubblenotes.utils.errors import WhatsAppError, WhatsAppNotReadyError
from conftest import FakeClock, FakeDriver


def build_service(tmp_path):
    driver = FakeDriver()
    clock = FakeClock()
    service = WhatsAppService(driver, session_root=str(tmp_path), init_timeout=30.0, logout_grace=0.0, clock=clock)
    return service, driver, clock


def test_status_before_init(tmp_path):
    service, _, _ = build_service(tmp_path)
    status = asyncio.run(service.refresh())

    assert status.model_dump(by_alias=True) == {
        "isReady": False, "hasQR": False, "phoneNumber": None, "error": None,
    }


def test_qr_then_ready(tmp_path):
    service, driver, _ = build_service(tmp_path)
    asyncio.run(service.init())

    driver.current = DriverState(qr="QR-DATA")
    status = asyncio.run(service.refresh())
    assert status.has_qr and not status.is_ready
    assert service.qr() == "QR-DATA"

    driver.current = DriverState(ready=True, phone_number="15551234567")
    status = asyncio.run(service.refresh())
    assert status.is_ready and not status.has_qr
    assert status.phone_number == "+15551234567"


def test_init_timeout_destroys_session(tmp_path):
    service, driver, clock = build_service(tmp_path)
    session_id = asyncio.run(service.init())

    clock.advance(31)
    status = asyncio.run(service.refresh())

    assert status.error == TIMEOUT_MESSAGE
    assert not status.is_ready
    assert driver.destroyed == [session_id]


def test_qr_before_deadline_disarms_timeout(tmp_path):
    service, driver, clock = build_service(tmp_path)
    asyncio.run(service.init())

    driver.current = DriverState(qr="QR")
    asyncio.run(service.refresh())
    clock.advance(60)
    status = asyncio.run(service.refresh())

    assert status.error is None
    assert status.has_qr


def test_init_failure_is_reported(tmp_path):
    service, driver, _ = build_service(tmp_path)
    driver.fail_start = True

    with pytest.raises(WhatsAppError):
        asyncio.run(service.init())
    assert service.status().error == "Failed to initialize WhatsApp"


def test_init_clears_old_session_dirs(tmp_path):
    (tmp_path / "whatsapp-session-old").mkdir()
    (tmp_path / "unrelated").mkdir()
    service, _, _ = build_service(tmp_path)

    asyncio.run(service.init())

    assert not (tmp_path / "whatsapp-session-old").exists()
    assert (tmp_path / "unrelated").exists()


def test_disconnect_logs_out_and_destroys(tmp_path):
    service, driver, _ = build_service(tmp_path)
    session_id = asyncio.run(service.init())
    driver.current = DriverState(ready=True)
    asyncio.run(service.refresh())

    asyncio.run(service.disconnect())

    assert driver.logged_out == [session_id]
    assert driver.destroyed == [session_id]
    assert not service.status().is_ready


def test_send_sticker_requires_ready_session(tmp_path):
    service, _, _ = build_service(tmp_path)
    with pytest.raises(WhatsAppNotReadyError):
        asyncio.run(service.send_sticker("AAAA"))


def test_send_sticker_strips_data_url(tmp_path):
    service, driver, _ = build_service(tmp_path)
    asyncio.run(service.init())
    driver.current = DriverState(ready=True)
    asyncio.run(service.refresh())

    asyncio.run(service.send_sticker("data:image/webp;base64,UklGRg=="))

    assert driver.sent == ["UklGRg=="]


def test_send_sticker_rejects_bad_payload(tmp_path):
    service, driver, _ = build_service(tmp_path)
    asyncio.run(service.init())
    driver.current = DriverState(ready=True)
    asyncio.run(service.refresh())

    with pytest.raises(ValueError):
        asyncio.run(service.send_sticker("not base64 !!"))
    with pytest.raises(ValueError):
        asyncio.run(service.send_sticker("data:image/webp;base64,"))
    assert driver.sent == []


def _scripted(statuses):
    remaining = list(statuses)

    async def fetch():
        return remaining.pop(0) if len(remaining) > 1 else remaining[0]

    return fetch


def test_monitor_emits_qr_then_ready():
    monitor = PairingMonitor(_scripted([
        WhatsAppStatus(),
        WhatsAppStatus(has_qr=True),
        WhatsAppStatus(is_ready=True, phone_number="+1555"),
    ]), interval=0)

    async def collect():
        return [event async for event in monitor.events()]

    events = asyncio.run(collect())
    names = [event["event"] for event in events]

    assert names == ["status", "status", "qr", "status", "ready"]
    assert events[-1]["data"]["phoneNumber"] == "+1555"


def test_monitor_times_out_without_signal():
    clock = FakeClock()
    monitor = PairingMonitor(_scripted([WhatsAppStatus()]), interval=0, timeout=30, clock=clock)

    first = asyncio.run(monitor.poll_once())
    assert [event["event"] for event in first] == ["status"]

    clock.advance(30)
    second = asyncio.run(monitor.poll_once())

    assert [event["event"] for event in second] == ["status", "timeout"]
    assert second[-1]["data"]["error"] == TIMEOUT_MESSAGE
    assert monitor.finished
