"""
Tests for the ExportService
"""
import csv
import io
import json
import zipfile
from pathlib import Path

import pytest

from conftest import make_image_bytes
from services.annotation_service import AnnotationService
from services.entity_store import EntityStore
from services.exceptions import NotFoundError, RenderError
from services.export_service import ExportService, build_form_csv
from services.form_service import FormService
from services.label_renderer import LabelRenderer
from utils.file_handler import get_annotations_dir, get_form_dir, get_original_images_dir

BOX = {"x": 50, "y": 60, "width": 80, "height": 50}


@pytest.fixture
def two_images(db, collection_session):
    images = []
    for name in ("first.png", "second.png"):
        file_name = f"1700000000000-0000abcd-{name}"
        path = get_original_images_dir(collection_session.product_number) / file_name
        path.write_bytes(make_image_bytes())
        images.append(EntityStore.save_image(db, collection_session.id, name, file_name, str(path)))
    return images


def open_export(db, session_id):
    return zipfile.ZipFile(io.BytesIO(ExportService.export_session(db, session_id)))


def names_under(archive, prefix):
    return sorted(n for n in archive.namelist() if n.startswith(prefix))


class TestExportSession:
    """Tests for export_session()"""

    def test_archive_layout(self, db, collection_session, two_images):
        """Test originals, labeled composites, annotations and form are all packed"""
        AnnotationService.annotate(db, two_images[0].id, collection_session.id, BOX, "Packaging", ["Crushed box"])

        with open_export(db, collection_session.id) as archive:
            assert names_under(archive, "images/original/") == sorted(
                f"images/original/{img.file_name}" for img in two_images
            )
            assert names_under(archive, "images/labeled/") == [
                "images/labeled/1700000000000-0000abcd-first_labeled.png"
            ]
            records = json.loads(archive.read("annotations/annotations.json"))
            rows = list(csv.reader(io.StringIO(archive.read("form/form.csv").decode("utf-8"))))

        assert len(records) == 1
        assert records[0]["imageId"] == two_images[0].id
        assert records[0]["category"] == "Packaging"
        assert records[0]["subcategories"] == ["Crushed box"]
        assert records[0]["boundingBox"] == {"x": 50.0, "y": 60.0, "width": 80.0, "height": 50.0}
        assert rows[0] == ["Section", "Field", "Value", "Updated At"]
        assert len(rows) - 1 == 15

    def test_labeled_fallback_renders_missing_file(self, db, collection_session, two_images):
        """Test a deleted composite is re-rendered on the fly"""
        AnnotationService.annotate(db, two_images[0].id, collection_session.id, BOX, "Packaging", ["Crushed box"])
        labeled = Path(EntityStore.get_image(db, two_images[0].id).labeled_path)
        expected = labeled.read_bytes()
        labeled.unlink()

        with open_export(db, collection_session.id) as archive:
            data = archive.read("images/labeled/1700000000000-0000abcd-first_labeled.png")

        assert data == expected

    def test_unreadable_original_is_skipped(self, db, collection_session, two_images):
        """Test one missing original does not abort the export"""
        Path(two_images[1].file_path).unlink()

        with open_export(db, collection_session.id) as archive:
            assert names_under(archive, "images/original/") == [f"images/original/{two_images[0].file_name}"]
            assert "form/form.csv" in archive.namelist()

    def test_far_off_canvas_box_exports(self, db, collection_session, two_images):
        """Test an annotation far outside the image does not abort the export"""
        far_box = {"x": 1e20, "y": 10, "width": 5, "height": 5}
        AnnotationService.annotate(db, two_images[0].id, collection_session.id, far_box, "Packaging", ["Crushed box"])
        Path(EntityStore.get_image(db, two_images[0].id).labeled_path).unlink()

        with open_export(db, collection_session.id) as archive:
            assert names_under(archive, "images/original/") == sorted(
                f"images/original/{img.file_name}" for img in two_images
            )
            assert "images/labeled/1700000000000-0000abcd-first_labeled.png" in archive.namelist()
            assert json.loads(archive.read("annotations/annotations.json"))[0]["boundingBox"]["x"] == 1e20

    def test_failed_render_skips_only_labeled_entry(self, db, collection_session, two_images, monkeypatch):
        """Test a render failure drops that labeled image and keeps the rest"""
        AnnotationService.annotate(db, two_images[0].id, collection_session.id, BOX, "Packaging", ["Crushed box"])
        Path(EntityStore.get_image(db, two_images[0].id).labeled_path).unlink()

        def fail(*args, **kwargs):
            raise RenderError("cannot draw")

        monkeypatch.setattr(LabelRenderer, "render", fail)

        with open_export(db, collection_session.id) as archive:
            assert names_under(archive, "images/labeled/") == []
            assert len(names_under(archive, "images/original/")) == 2
            assert "form/form.csv" in archive.namelist()

    def test_writes_project_copies(self, db, collection_session, two_images):
        """Test annotations.json and form.csv are also kept in the project tree"""
        ExportService.export_session(db, collection_session.id)

        assert (get_annotations_dir(collection_session.product_number) / "annotations.json").exists()
        assert (get_form_dir(collection_session.product_number) / "form.csv").exists()

    def test_unknown_session(self, db):
        with pytest.raises(NotFoundError):
            ExportService.export_session(db, 999)


class TestBuildFormCsv:
    """Tests for build_form_csv()"""

    def test_filled_and_empty_rows(self, db, collection_session):
        """Test stored values fill their row and the rest stay empty"""
        FormService.save_section(db, collection_session.id, "auth2", {"sealIntact": False})

        content = build_form_csv(EntityStore.list_form_fields(db, collection_session.id))
        rows = list(csv.reader(io.StringIO(content)))[1:]

        by_key = {(r[0], r[1]): r for r in rows}
        assert len(rows) == 15
        assert by_key[("auth2", "sealIntact")][2] == "false"
        assert by_key[("auth2", "sealIntact")][3] != ""
        assert by_key[("product_info", "date")][2:] == ["", ""]

    def test_all_cells_quoted(self):
        first_line = build_form_csv([]).splitlines()[0]
        assert first_line == '"Section","Field","Value","Updated At"'

    def test_unknown_fields_not_exported(self, db, collection_session):
        """Test fields outside the fixed schema do not change the row count"""
        FormService.save_section(db, collection_session.id, "auth1", {"verdict": "fake"})

        content = build_form_csv(EntityStore.list_form_fields(db, collection_session.id))

        assert len(content.splitlines()) == 16
        assert "verdict" not in content
