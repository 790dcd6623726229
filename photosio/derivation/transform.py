"""
Thumbnail rendering.  No store or queue access here, only bytes in and bytes out.
"""
import io
from typing import BinaryIO

from PIL import Image, ImageOps, UnidentifiedImageError

from photosio.errors import DecodeError

JPEG_QUALITY = 85


def resize_stream(fp: BinaryIO, width: int, height: int) -> bytes:
    """
    Decode an image, fill a width x height frame with it (scale, then crop
    the overflow around the center) and encode the result as JPEG.
    """
    try:
        with Image.open(fp) as im:
            im = ImageOps.exif_transpose(im)
            if im.mode != "RGB":
                im = im.convert("RGB")
            thumb = ImageOps.fit(im, (width, height), method=Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"cannot decode image: {e}") from e
    out = io.BytesIO()
    thumb.save(out, format="JPEG", quality=JPEG_QUALITY)
    return out.getvalue()


def resize_image(data: bytes, width: int, height: int) -> bytes:
    return resize_stream(io.BytesIO(data), width, height)
