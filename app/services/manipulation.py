import io
import logging
from functools import partial
from typing import Callable, Optional

from PIL import Image, ImageColor, ImageOps

from app.exceptions import EncodingError
from app.models.requests import Extend, ManipulationSpec, Resize, ScreenshotOptions

logger = logging.getLogger(__name__)

DEFAULT_TYPE = "png"
DEFAULT_JPEG_QUALITY = 80

Step = Callable[[Image.Image], Image.Image]

# Clockwise right angles map onto lossless transposes
RIGHT_ANGLE_TRANSPOSES = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def resolve_content_type(options: ScreenshotOptions) -> str:
    if options.encoding == "base64":
        return "text"
    return options.type or DEFAULT_TYPE


def _resize(spec: Resize, image: Image.Image) -> Image.Image:
    width, height = image.size
    if spec.width is None:
        return image.resize((max(1, round(width * spec.height / height)), spec.height))
    if spec.height is None:
        return image.resize((spec.width, max(1, round(height * spec.width / width))))

    size = (spec.width, spec.height)
    if spec.fit == "fill":
        return image.resize(size)
    if spec.fit == "contain":
        return ImageOps.pad(image, size)
    if spec.fit == "inside":
        return ImageOps.contain(image, size)
    if spec.fit == "outside":
        scale = max(spec.width / width, spec.height / height)
        return image.resize((max(1, round(width * scale)), max(1, round(height * scale))))
    return ImageOps.fit(image, size)


def _extend(spec: Extend, image: Image.Image) -> Image.Image:
    fill = ImageColor.getcolor(spec.background, image.mode)
    return ImageOps.expand(image, border=(spec.left, spec.top, spec.right, spec.bottom), fill=fill)


def _rotate(angle: float, image: Image.Image) -> Image.Image:
    normalized = angle % 360
    if normalized == 0:
        return image
    if normalized in RIGHT_ANGLE_TRANSPOSES:
        return image.transpose(RIGHT_ANGLE_TRANSPOSES[normalized])
    # Pillow rotates counter-clockwise
    return image.rotate(-normalized, expand=True, resample=Image.Resampling.BICUBIC)


def manipulation_steps(spec: ManipulationSpec) -> list[tuple[str, Step]]:
    """Build the transform chain. Order is always resize, extend, flip, flop, rotate."""
    steps: list[tuple[str, Step]] = []
    if spec.resize:
        steps.append(("resize", partial(_resize, spec.resize)))
    if spec.extend:
        steps.append(("extend", partial(_extend, spec.extend)))
    if spec.flip:
        steps.append(("flip", ImageOps.flip))
    if spec.flop:
        steps.append(("flop", ImageOps.mirror))
    if spec.rotate:
        steps.append(("rotate", partial(_rotate, spec.rotate)))
    return steps


def encode_image(image: Image.Image, fmt: str, quality: Optional[int] = None) -> bytes:
    buffer = io.BytesIO()
    if fmt == "jpeg":
        image.convert("RGB").save(buffer, format="JPEG", quality=quality or DEFAULT_JPEG_QUALITY)
    else:
        image.save(buffer, format="PNG")
    return buffer.getvalue()


def apply_manipulations(data: bytes, spec: ManipulationSpec, fmt: str = DEFAULT_TYPE, quality: Optional[int] = None) -> bytes:
    """Decode *data*, run the transform chain and re-encode as *fmt*."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")

        steps = manipulation_steps(spec)
        for _, step in steps:
            image = step(image)

        output = encode_image(image, fmt, quality)
    except (OSError, ValueError, MemoryError, Image.DecompressionBombError) as e:
        raise EncodingError(f"Image manipulation failed: {e}") from e

    logger.info(
        "Applied %s to screenshot (%d -> %d bytes)",
        ", ".join(name for name, _ in steps) or "no transforms",
        len(data),
        len(output),
    )
    return output
