"""On-the-fly resize and format conversion for stored images.

Pillow does the actual work; this module decides target dimensions for each
fit strategy and never enlarges the source.
"""
import io
from dataclasses import dataclass
from typing import Literal, Optional

from PIL import Image, ImageOps

OUTPUT_FORMATS = {
    "webp": ("WEBP", "image/webp"),
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "gif": ("GIF", "image/gif"),
}
OutputFormat = Literal["webp", "jpeg", "jpg", "png", "gif"]
FitMode = Literal["cover", "contain", "fill", "inside", "outside"]
FIT_MODES = ("cover", "contain", "fill", "inside", "outside")
DEFAULT_FIT = "cover"
MAX_DIMENSION = 4096

# Formats Pillow writes without an alpha channel
_OPAQUE_FORMATS = {"JPEG"}


@dataclass(frozen=True)
class TransformParams:
    format: Optional[str] = None
    quality: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    fit: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.format, self.quality, self.width, self.height, self.fit)
        )


def target_size(
    source: tuple[int, int],
    width: Optional[int],
    height: Optional[int],
    fit: str,
) -> tuple[int, int]:
    """Output dimensions for a resize, before any crop/pad for cover/contain.

    ``cover`` and ``contain`` return the final box; the others return the
    scaled image size. Nothing is ever larger than the source.
    """
    src_w, src_h = source
    if width is None and height is None:
        return source

    if width is None or height is None:
        # One side given: keep aspect ratio
        if width is not None:
            scale = min(width, src_w) / src_w
        else:
            scale = min(height, src_h) / src_h
        return max(1, round(src_w * scale)), max(1, round(src_h * scale))

    box_w, box_h = min(width, src_w), min(height, src_h)
    if fit in ("cover", "contain", "fill"):
        return box_w, box_h

    if fit == "inside":
        scale = min(width / src_w, height / src_h, 1.0)
    else:  # outside
        scale = min(max(width / src_w, height / src_h), 1.0)
    return max(1, round(src_w * scale)), max(1, round(src_h * scale))


def transform_image(data: bytes, params: TransformParams, default_format: str, default_quality: int) -> tuple[bytes, str]:
    """Decode, resize, re-encode. Returns (bytes, media type).

    CPU bound; callers run it in a worker thread.
    """
    fmt_key = (params.format or default_format).lower()
    pil_format, media_type = OUTPUT_FORMATS[fmt_key]
    quality = params.quality or default_quality
    fit = params.fit or DEFAULT_FIT

    with Image.open(io.BytesIO(data)) as source:
        image = ImageOps.exif_transpose(source)
        image = _resize(image, params.width, params.height, fit, pil_format)
        image = _prepare_mode(image, pil_format)

        output = io.BytesIO()
        save_kwargs = {}
        if pil_format in ("JPEG", "WEBP"):
            save_kwargs["quality"] = quality
        if pil_format == "PNG":
            save_kwargs["optimize"] = True
        image.save(output, format=pil_format, **save_kwargs)
    return output.getvalue(), media_type


def _resize(image: Image.Image, width: Optional[int], height: Optional[int], fit: str, pil_format: str) -> Image.Image:
    if width is None and height is None:
        return image

    size = target_size(image.size, width, height, fit)
    if width is None or height is None or fit in ("fill", "inside", "outside"):
        if size == image.size:
            return image
        return image.resize(size, Image.Resampling.LANCZOS)

    if fit == "cover":
        return ImageOps.fit(image, size, Image.Resampling.LANCZOS)

    # contain: scale inside the box, then pad out to it
    if pil_format in _OPAQUE_FORMATS:
        image = _flatten(image)
        color = (255, 255, 255)
    else:
        image = image.convert("RGBA")
        color = (0, 0, 0, 0)
    return ImageOps.pad(image, size, Image.Resampling.LANCZOS, color=color)


def _prepare_mode(image: Image.Image, pil_format: str) -> Image.Image:
    if pil_format in _OPAQUE_FORMATS:
        return _flatten(image)
    if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        return image.convert("RGBA")
    return image


def _flatten(image: Image.Image) -> Image.Image:
    """Composite any transparency onto white for formats without alpha."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image
