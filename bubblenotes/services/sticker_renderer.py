"""
Sticker rendering
Applies a baked transform to an image inside the square sticker viewport and
encodes the result as WebP, the format WhatsApp stickers use.
"""

import base64
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from bubblenotes.models.media import MediaType
from bubblenotes.models.sticker import StickerTransform
from bubblenotes.utils.errors import StickerRenderError


def check_renderable(media_type: MediaType) -> None:
    match media_type:
        case MediaType.IMAGE | MediaType.GIF:
            return
        case MediaType.VIDEO:
            raise StickerRenderError("Video stickers are not rendered server-side")
        case MediaType.DOCUMENT:
            raise StickerRenderError("Documents cannot be turned into stickers")


def render_sticker(
    image_bytes: bytes,
    transform: StickerTransform,
    viewport_size: int = 512,
    content_size: int = 256,
) -> bytes:
    """
    Render an image as a WebP sticker.

    The image is first fitted into a content_size box (as in the editor
    preview), then scaled, rotated clockwise and placed at the viewport centre
    plus the transform's offset. Whatever falls outside the viewport is cut.

    Args:
        image_bytes: source image (first frame is used for animations)
        transform: baked edit
        viewport_size: side of the square output in pixels
        content_size: side of the box the image is fitted into

    Returns:
        WebP bytes
    """
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise StickerRenderError(f"Unreadable image: {e}") from e

    image = image.convert("RGBA")
    width, height = image.size
    factor = min(content_size / width, content_size / height) * (transform.scale / 100)
    image = image.resize(
        (max(1, round(width * factor)), max(1, round(height * factor))),
        Image.LANCZOS,
    )
    if transform.rotation:
        image = image.rotate(-transform.rotation, expand=True)

    canvas = Image.new("RGBA", (viewport_size, viewport_size), (0, 0, 0, 0))
    left = round(viewport_size / 2 + transform.position.x - image.width / 2)
    top = round(viewport_size / 2 + transform.position.y - image.height / 2)
    canvas.paste(image, (left, top), image)

    out = BytesIO()
    canvas.save(out, format="WEBP")
    return out.getvalue()


def to_data_url(webp_bytes: bytes) -> str:
    return "data:image/webp;base64," + base64.b64encode(webp_bytes).decode("ascii")
