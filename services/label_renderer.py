from typing import Any, Dict, Iterable, Mapping, Tuple
from functools import lru_cache
from pathlib import Path
import io
import logging

from PIL import Image as PILImage, ImageColor, ImageDraw, ImageFont, UnidentifiedImageError

from config.settings import settings
from services.exceptions import RenderError

logger = logging.getLogger(__name__)


class LabelRenderer:
    """
    Burns annotation boxes and category tags into a copy of an image.

    render() is pure: the same source bytes and the same ordered annotation
    list always produce the same PNG bytes.
    """

    _min_stroke_width = 3
    _stroke_divisor = 400
    _min_font_size = 16
    _font_divisor = 50

    @classmethod
    def stroke_width_for(cls, image_width: int) -> int:
        return max(cls._min_stroke_width, image_width // cls._stroke_divisor)

    @classmethod
    def font_size_for(cls, image_width: int) -> int:
        return max(cls._min_font_size, image_width // cls._font_divisor)

    @staticmethod
    @lru_cache(maxsize=32)
    def _load_font(font_name: str, size: int):
        try:
            return ImageFont.truetype(font_name, size)
        except OSError:
            logger.debug("Font %s unavailable, using Pillow default font", font_name)
            return ImageFont.load_default(size=size)

    @staticmethod
    def _box_and_category(annotation: Any) -> Tuple[Dict[str, float], str]:
        if isinstance(annotation, Mapping):
            box = annotation.get("bounding_box") or annotation.get("boundingBox")
            category = annotation.get("category", "")
        else:
            box = annotation.bounding_box
            category = annotation.category
        if hasattr(box, "model_dump"):
            box = box.model_dump()
        return box, str(category)

    @staticmethod
    def _clamp(value: float, limit: int) -> int:
        return int(round(min(max(float(value), -limit), limit)))

    @staticmethod
    def _prepare_canvas(source: PILImage.Image) -> PILImage.Image:
        """Copy the source pixels into a drawable RGB/RGBA raster of the same size."""
        has_alpha = "A" in source.getbands() or "transparency" in source.info
        mode = "RGBA" if has_alpha else "RGB"
        if source.mode == mode:
            return source.copy()
        return source.convert(mode)

    @classmethod
    def render(cls, original_bytes: bytes, annotations: Iterable[Any]) -> bytes:
        """
        Render all annotations onto the original image.

        Args:
            original_bytes: Encoded source image
            annotations: Annotations in creation order; each needs a
                bounding_box (x, y, width, height) and a category

        Returns:
            PNG bytes of the composite

        Raises:
            RenderError: source cannot be decoded, an annotation cannot be
                drawn, or the result cannot be encoded
        """
        try:
            with PILImage.open(io.BytesIO(original_bytes)) as source:
                source.load()
                canvas = cls._prepare_canvas(source)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise RenderError(f"Unsupported or corrupt source image: {exc}") from exc

        width = canvas.width
        stroke = cls.stroke_width_for(width)
        font_size = cls.font_size_for(width)
        font = cls._load_font(settings.LABEL_FONT, font_size)
        pad_x = int(font_size * 0.5)
        pad_y = int(font_size * 0.25)
        tag_height = font_size + pad_y * 2

        box_color = ImageColor.getrgb(settings.LABEL_COLOR)
        text_color = ImageColor.getrgb(settings.LABEL_TEXT_COLOR)

        draw = ImageDraw.Draw(canvas)
        half = stroke // 2
        # Anything past this distance from the origin is off-canvas either way
        limit = max(canvas.width, canvas.height) * 2 + tag_height

        try:
            for annotation in annotations:
                box, category = cls._box_and_category(annotation)
                x = cls._clamp(box["x"], limit)
                y = cls._clamp(box["y"], limit)
                right = cls._clamp(box["x"] + box["width"], limit)
                bottom = cls._clamp(box["y"] + box["height"], limit)

                # Stroke centred on the box edge
                draw.rectangle(
                    [x - half, y - half, right + half, bottom + half],
                    outline=box_color,
                    width=stroke,
                )

                # Tag sits above the top-left corner; may run off-canvas near the top edge
                tag_width = int(round(draw.textlength(category, font=font))) + pad_x * 2
                tag_top = y - tag_height
                draw.rectangle(
                    [x, tag_top, x + tag_width - 1, y - 1],
                    fill=box_color,
                )
                draw.text((x + pad_x, tag_top + pad_y), category, fill=text_color, font=font)
        except (OverflowError, SystemError, ValueError, TypeError, KeyError) as exc:
            raise RenderError(f"Failed to draw annotations: {exc}") from exc

        buffer = io.BytesIO()
        try:
            canvas.save(buffer, format="PNG")
        except (OSError, ValueError) as exc:
            raise RenderError(f"Failed to encode labeled image: {exc}") from exc
        return buffer.getvalue()

    @classmethod
    def render_to_file(cls, source_path: str, annotations: Iterable[Any], output_path: Path) -> Path:
        """Render from a stored original and write the PNG to output_path."""
        try:
            original_bytes = Path(source_path).read_bytes()
        except OSError as exc:
            raise RenderError(f"Failed to read source image {source_path}: {exc}") from exc

        png_bytes = cls.render(original_bytes, annotations)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(png_bytes)
        logger.info("Generated labeled image: %s", output_path)
        return output_path
