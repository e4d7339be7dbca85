import base64
from io import BytesIO

from PIL import Image

from bubblenotes.bot.whatsapp_client import DriverState


def png_data_url():
    out = BytesIO()
    Image.new("RGBA", (32, 32), (0, 128, 255, 255)).save(out, format="PNG")
    return "data:image/png;base64," + base64.b64encode(out.getvalue()).decode()


def test_bake_clamps_values(client):
    response = client.post("/api/sticker/bake", json={
        "isVideo": True, "totalDuration": 2.0, "rotation": 90, "scale": 10, "duration": 10,
    })

    body = response.json()
    assert body["scale"] == 25
    assert body["videoDuration"] == 2.0
    assert body["videoStartPoint"] == 0.0
    assert body["videoEndPoint"] == 2.0


def test_render(client):
    response = client.post("/api/sticker/render", json={
        "image": png_data_url(),
        "transform": {"rotation": 180, "scale": 100, "position": {"x": 0, "y": 0}},
    })

    media = response.json()["media"]
    assert media.startswith("data:image/webp;base64,")


def test_render_rejects_video(client):
    response = client.post("/api/sticker/render", json={
        "image": "data:video/mp4;base64,AAAA",
        "transform": {"rotation": 0, "scale": 100, "position": {"x": 0, "y": 0}},
    })
    assert response.status_code == 422


def test_whatsapp_invalid_action(client):
    response = client.get("/api/whatsapp", params={"action": "dance"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action"}


def test_whatsapp_pairing_flow(client, driver):
    assert client.get("/api/whatsapp", params={"action": "init"}).json()["success"] is True

    driver.current = DriverState(qr="QR-CODE")
    status = client.get("/api/whatsapp", params={"action": "status"}).json()
    assert status["hasQR"] is True
    assert client.get("/api/whatsapp", params={"action": "qr"}).json() == {"qrCode": "QR-CODE"}

    driver.current = DriverState(ready=True, phone_number="4915112345")
    status = client.get("/api/whatsapp", params={"action": "status"}).json()
    assert status == {"isReady": True, "hasQR": False, "phoneNumber": "+4915112345", "error": None}

    sent = client.post("/api/whatsapp", json={"action": "send-sticker", "media": "data:image/webp;base64,UklGRg=="})
    assert sent.json() == {"success": True, "message": "Sticker sent successfully!"}
    assert driver.sent == ["UklGRg=="]

    assert client.get("/api/whatsapp", params={"action": "disconnect"}).json()["success"] is True
    assert client.get("/api/whatsapp", params={"action": "status"}).json()["isReady"] is False


def test_whatsapp_init_failure(client, driver):
    driver.fail_start = True
    response = client.get("/api/whatsapp", params={"action": "init"})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to initialize WhatsApp"}


def test_send_sticker_when_not_connected(client):
    response = client.post("/api/whatsapp", json={"action": "send-sticker", "media": "UklGRg=="})
    assert response.status_code == 400
    assert response.json() == {"error": "WhatsApp is not connected"}


def test_render_rejects_out_of_range_transform(client):
    for transform in (
        {"rotation": 0, "scale": 10, "position": {"x": 0, "y": 0}},
        {"rotation": 0, "scale": 1e6, "position": {"x": 0, "y": 0}},
        {"rotation": 45, "scale": 100, "position": {"x": 0, "y": 0}},
    ):
        response = client.post("/api/sticker/render", json={"image": png_data_url(), "transform": transform})
        assert response.status_code == 422, transform
