from io import BytesIO

import pytest
from PIL import Image

from bubblenotes.models.media import MediaType
from bubblenotes.models.sticker import Position, StickerTransform
from bubblenotes.services.sticker_renderer import check_renderable, render_sticker, to_data_url
from bubblenotes.utils.errors import StickerRenderError


def png_bytes(size=(40, 20), color=(255, 0, 0, 255)):
    out = BytesIO()
    Image.new("RGBA", size, color).save(out, format="PNG")
    return out.getvalue()


def test_render_produces_square_webp():
    transform = StickerTransform(rotation=90, scale=50, position=Position(x=10, y=-10))

    webp = render_sticker(png_bytes(), transform, viewport_size=128, content_size=64)

    image = Image.open(BytesIO(webp))
    assert image.format == "WEBP"
    assert image.size == (128, 128)


def test_render_keeps_corners_transparent():
    transform = StickerTransform(rotation=0, scale=100, position=Position())

    image = Image.open(BytesIO(render_sticker(png_bytes(), transform, 128, 64))).convert("RGBA")

    assert image.getpixel((0, 0))[3] == 0
    assert image.getpixel((64, 64))[3] > 0


def test_unreadable_image():
    with pytest.raises(StickerRenderError):
        render_sticker(b"not an image", StickerTransform(rotation=0, scale=100, position=Position()))


@pytest.mark.parametrize("media_type", [MediaType.VIDEO, MediaType.DOCUMENT])
def test_only_images_are_renderable(media_type):
    check_renderable(MediaType.IMAGE)
    with pytest.raises(StickerRenderError):
        check_renderable(media_type)


def test_data_url_prefix():
    assert to_data_url(b"abc") == "data:image/webp;base64,YWJj"
