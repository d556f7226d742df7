"""Tests for image processing and the staged image store."""

import io
from pathlib import Path

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from wp_image_renamer.db import Base
from wp_image_renamer.images.processing import (
    ImageProcessingError,
    diagnose_signature,
    prepare_for_vision,
    read_dimensions,
)
from wp_image_renamer.images.service import (
    ImageNotFoundError,
    ImageRejectedError,
    IncomingFile,
    add_images,
    assign_page_to_selected,
    clear_images,
    clear_selection,
    get_image,
    list_images,
    read_image_bytes,
    remove_image,
    resolve_mime_type,
    select_all,
    selected_images,
    set_generated_name,
    set_target_page,
    toggle_selection,
    update_image,
)
from wp_image_renamer.sites.service import add_site

PAGE = {"id": 12, "title": "Elagage", "slug": "elagage"}


def make_image(width=10, height=10, fmt="PNG", mode="RGB"):
    """Encode a blank image with Pillow."""
    buffer = io.BytesIO()
    Image.new(mode, (width, height)).save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def site(session):
    return add_site(session, "https://example.com", "Example", "admin")


@pytest.fixture
def staged(session, site, tmp_path):
    """Three valid PNG images staged for the site."""
    files = [
        IncomingFile(f"photo-{i}.png", make_image(), "image/png") for i in range(3)
    ]
    return add_images(session, site.id, files, upload_dir=tmp_path)


class TestReadDimensions:
    """Tests for read_dimensions."""

    def test_png(self):
        assert read_dimensions(make_image(40, 30)) == (40, 30)

    def test_not_an_image(self):
        assert read_dimensions(b"hello world") is None


class TestDiagnoseSignature:
    """Tests for diagnose_signature."""

    @pytest.mark.parametrize(
        ("data", "kind"),
        [
            (b"\xff\xd8\xff\xe0broken", "JPEG"),
            (b"\x89PNGbroken", "PNG"),
            (b"GIF89abroken", "GIF"),
        ],
    )
    def test_corrupted(self, data, kind):
        assert diagnose_signature(data) == (
            f"Corrupted image (valid {kind} signature but corrupted data)"
        )

    def test_invalid_format(self):
        message = diagnose_signature(b"abcdef")
        assert message.startswith("Invalid format (signature: 97,98,99,100)")


class TestPrepareForVision:
    """Tests for prepare_for_vision."""

    def test_resizes_longest_edge(self):
        data, mime_type = prepare_for_vision(make_image(400, 200), max_dimension=100)
        assert mime_type == "image/jpeg"
        assert read_dimensions(data) == (100, 50)

    def test_small_image_kept(self):
        data, _ = prepare_for_vision(make_image(50, 80))
        assert read_dimensions(data) == (50, 80)

    def test_transparent_png_flattened(self):
        data, _ = prepare_for_vision(make_image(20, 20, mode="RGBA"))
        with Image.open(io.BytesIO(data)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"

    def test_undecodable(self):
        with pytest.raises(ImageProcessingError):
            prepare_for_vision(b"not an image")


class TestResolveMimeType:
    """Tests for resolve_mime_type."""

    @pytest.mark.parametrize(
        ("filename", "content_type", "expected"),
        [
            ("a.png", "image/png", "image/png"),
            ("a.JPG", None, "image/jpeg"),
            ("a.webp", "application/octet-stream", "image/webp"),
            ("a.bmp", "image/bmp", None),
            ("noext", None, None),
        ],
    )
    def test_resolve(self, filename, content_type, expected):
        assert resolve_mime_type(filename, content_type) == expected


class TestAddImages:
    """Tests for add_images."""

    def test_stores_files_and_dimensions(self, session, site, tmp_path):
        data = make_image(64, 48)
        (image,) = add_images(
            session, site.id, [IncomingFile("jardin.png", data)], upload_dir=tmp_path
        )

        assert image.width == 64
        assert image.height == 48
        assert image.status == "pending"
        assert image.load_error is None
        assert image.selected is False
        assert Path(image.stored_path).parent == tmp_path / site.id
        assert read_image_bytes(image) == data

    def test_undecodable_kept_with_error(self, session, site, tmp_path):
        (image,) = add_images(
            session,
            site.id,
            [IncomingFile("broken.jpg", b"\xff\xd8\xff\xe0junk")],
            upload_dir=tmp_path,
        )
        assert (image.width, image.height) == (0, 0)
        assert "Corrupted image" in image.load_error

    def test_rejection_is_atomic(self, session, site, tmp_path):
        files = [
            IncomingFile("ok.png", make_image()),
            IncomingFile("doc.pdf", b"%PDF", "application/pdf"),
        ]
        with pytest.raises(ImageRejectedError) as exc_info:
            add_images(session, site.id, files, upload_dir=tmp_path)

        assert exc_info.value.code == "unsupported_type"
        assert list_images(session, site.id) == []
        assert not (tmp_path / site.id).exists()

    def test_too_large(self, session, site, tmp_path):
        with pytest.raises(ImageRejectedError) as exc_info:
            add_images(
                session,
                site.id,
                [IncomingFile("big.png", b"x" * 2048)],
                upload_dir=tmp_path,
                max_bytes=1024,
            )
        assert exc_info.value.code == "file_too_large"

    def test_empty_file(self, session, site, tmp_path):
        with pytest.raises(ImageRejectedError) as exc_info:
            add_images(
                session, site.id, [IncomingFile("a.png", b"")], upload_dir=tmp_path
            )
        assert exc_info.value.code == "empty_file"

    def test_intake_order_kept(self, session, site, staged, tmp_path):
        last = IncomingFile("last.png", make_image())
        add_images(session, site.id, [last], upload_dir=tmp_path)
        names = [image.original_name for image in list_images(session, site.id)]
        assert names == ["photo-0.png", "photo-1.png", "photo-2.png", "last.png"]


class TestImageEdits:
    """Tests for per-image updates."""

    def test_get_wrong_site(self, session, staged):
        other = add_site(session, "https://other.com", "Other", "admin")
        with pytest.raises(ImageNotFoundError):
            get_image(session, other.id, staged[0].id)

    def test_update_fields(self, session, site, staged):
        image = update_image(
            session,
            site.id,
            staged[0].id,
            custom_instructions="Mettre en avant le chêne",
            status="ready",
        )
        assert image.custom_instructions == "Mettre en avant le chêne"
        assert image.status == "ready"

    def test_update_invalid_status(self, session, site, staged):
        with pytest.raises(ValueError):
            update_image(session, site.id, staged[0].id, status="bogus")

    def test_update_unknown_field(self, session, site, staged):
        with pytest.raises(ValueError):
            update_image(session, site.id, staged[0].id, stored_path="/etc/passwd")

    def test_generated_name(self, session, site, staged):
        image = set_generated_name(session, site.id, staged[0].id, "elagage-evreux")
        assert image.generated_name == "elagage-evreux"

    def test_target_page(self, session, site, staged):
        image = set_target_page(session, site.id, staged[0].id, PAGE)
        assert image.target_page == PAGE
        assert image.to_dict()["target_page"]["id"] == 12

        image = set_target_page(session, site.id, staged[0].id, None)
        assert image.target_page is None

    def test_remove_deletes_file(self, session, site, staged):
        path = Path(staged[0].stored_path)
        remove_image(session, site.id, staged[0].id)
        assert not path.exists()
        assert len(list_images(session, site.id)) == 2

    def test_clear(self, session, site, staged):
        paths = [Path(image.stored_path) for image in staged]
        assert clear_images(session, site.id) == 3
        assert list_images(session, site.id) == []
        assert not any(path.exists() for path in paths)


class TestSelection:
    """Tests for multi-selection and bulk page assignment."""

    def test_toggle(self, session, site, staged):
        assert toggle_selection(session, site.id, staged[0].id) is True
        assert toggle_selection(session, site.id, staged[0].id) is False

    def test_select_all_and_clear(self, session, site, staged):
        assert select_all(session, site.id) == 3
        assert len(selected_images(session, site.id)) == 3
        clear_selection(session, site.id)
        assert selected_images(session, site.id) == []

    def test_assign_to_selected(self, session, site, staged):
        toggle_selection(session, site.id, staged[0].id)
        toggle_selection(session, site.id, staged[2].id)

        assert assign_page_to_selected(session, site.id, PAGE) == 2

        assigned = [image.target_page_id for image in list_images(session, site.id)]
        assert assigned == [12, None, 12]
        assert selected_images(session, site.id) == []
