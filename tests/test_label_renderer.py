"""
Tests for the LabelRenderer
"""
import io

import pytest
from PIL import Image

from conftest import make_image_bytes
from services.exceptions import RenderError
from services.label_renderer import LabelRenderer

LABEL_RGB = (0x19, 0x76, 0xD2)
WHITE = (255, 255, 255)


def annotation(x, y, width, height, category="Packaging"):
    return {"bounding_box": {"x": x, "y": y, "width": width, "height": height}, "category": category}


def decode(png_bytes):
    img = Image.open(io.BytesIO(png_bytes))
    img.load()
    return img


class TestLabelRendererSizing:
    """Tests for stroke and font scaling"""

    @pytest.mark.parametrize("width,expected", [(100, 3), (1200, 3), (1600, 4), (4000, 10)])
    def test_stroke_width_scales_with_image_width(self, width, expected):
        assert LabelRenderer.stroke_width_for(width) == expected

    @pytest.mark.parametrize("width,expected", [(100, 16), (800, 16), (1000, 20), (4000, 80)])
    def test_font_size_scales_with_image_width(self, width, expected):
        assert LabelRenderer.font_size_for(width) == expected


class TestLabelRendererRender:
    """Tests for render()"""

    def test_render_returns_png_of_same_size(self):
        """Test output is a PNG with the source dimensions"""
        result = decode(LabelRenderer.render(make_image_bytes(), [annotation(50, 60, 80, 50)]))

        assert result.format == "PNG"
        assert result.size == (200, 150)

    def test_render_is_deterministic(self):
        """Test identical inputs give byte-identical output"""
        source = make_image_bytes(fmt="JPEG")
        annotations = [annotation(50, 60, 80, 50), annotation(10, 40, 30, 30, "Labeling")]

        assert LabelRenderer.render(source, annotations) == LabelRenderer.render(source, annotations)

    def test_render_draws_box_and_tag(self):
        """Test box outline and tag background use the label colour"""
        result = decode(LabelRenderer.render(make_image_bytes(), [annotation(50, 60, 80, 50)])).convert("RGB")

        # Left edge of the outline
        assert result.getpixel((50, 80)) == LABEL_RGB
        # Tag background above the top-left corner, left of the text
        assert result.getpixel((51, 40)) == LABEL_RGB
        # Interior of the box is untouched
        assert result.getpixel((90, 90)) == WHITE
        # Far corner is untouched
        assert result.getpixel((5, 145)) == WHITE

    def test_render_without_annotations_copies_pixels(self):
        """Test an empty annotation list leaves pixels unchanged"""
        source = make_image_bytes(color=(12, 34, 56))
        result = decode(LabelRenderer.render(source, [])).convert("RGB")

        assert result.getpixel((0, 0)) == (12, 34, 56)
        assert result.getpixel((199, 149)) == (12, 34, 56)

    def test_render_keeps_alpha_channel(self):
        """Test transparent sources stay RGBA"""
        source = make_image_bytes(mode="RGBA", color=(0, 0, 0, 0))
        result = decode(LabelRenderer.render(source, [annotation(50, 60, 80, 50)]))

        assert result.mode == "RGBA"
        assert result.getpixel((5, 145)) == (0, 0, 0, 0)

    def test_render_box_near_top_edge(self):
        """Test a tag that would run off the top still renders"""
        result = decode(LabelRenderer.render(make_image_bytes(), [annotation(5, 2, 40, 40)]))

        assert result.size == (200, 150)

    def test_render_accepts_orm_like_objects(self):
        """Test attribute-style annotations are accepted"""
        class Row:
            bounding_box = {"x": 50, "y": 60, "width": 80, "height": 50}
            category = "Packaging"

        assert LabelRenderer.render(make_image_bytes(), [Row()]) == \
            LabelRenderer.render(make_image_bytes(), [annotation(50, 60, 80, 50)])

    def test_render_far_off_canvas_box(self):
        """Test huge coordinates are drawn off-canvas instead of overflowing"""
        source = make_image_bytes()

        result = decode(LabelRenderer.render(source, [annotation(1e20, 10, 5, 5)]))

        assert result.size == (200, 150)
        assert result.tobytes() == decode(LabelRenderer.render(source, [])).tobytes()

    def test_render_box_spilling_past_edges(self):
        """Test a box larger than the canvas still outlines the visible part"""
        result = decode(LabelRenderer.render(make_image_bytes(), [annotation(20, 30, 1e12, 1e12)]))

        assert result.getpixel((20, 100)) == LABEL_RGB

    def test_render_unusable_geometry_raises_render_error(self):
        """Test a box that cannot be drawn surfaces as RenderError"""
        with pytest.raises(RenderError):
            LabelRenderer.render(make_image_bytes(), [annotation(float("nan"), 10, 5, 5)])

    def test_render_rejects_undecodable_bytes(self):
        """Test non-image bytes raise RenderError"""
        with pytest.raises(RenderError):
            LabelRenderer.render(b"not an image", [annotation(0, 0, 10, 10)])


class TestLabelRendererRenderToFile:
    """Tests for render_to_file()"""

    def test_render_to_file_writes_png(self, tmp_path):
        """Test the composite is written, creating parent dirs"""
        source = tmp_path / "source.png"
        source.write_bytes(make_image_bytes())
        output = tmp_path / "labeled" / "source_labeled.png"

        LabelRenderer.render_to_file(str(source), [annotation(50, 60, 80, 50)], output)

        assert output.exists()
        assert output.read_bytes() == LabelRenderer.render(source.read_bytes(), [annotation(50, 60, 80, 50)])

    def test_render_to_file_missing_source(self, tmp_path):
        """Test a missing source raises RenderError"""
        with pytest.raises(RenderError):
            LabelRenderer.render_to_file(str(tmp_path / "missing.png"), [], tmp_path / "out.png")
