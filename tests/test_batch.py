"""Tests for the sequential batch workflows.

The Anthropic client is a MagicMock; WordPress is mocked with respx.
"""

import io
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
import respx
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from wp_image_renamer.batch import (
    MediaSuggestion,
    apply_media_updates,
    build_image_context,
    generate_names,
    regenerate_name,
    suggest_media_metadata,
    upload_images,
)
from wp_image_renamer.cahier.schema import CahierDesCharges
from wp_image_renamer.cahier.service import set_cahier
from wp_image_renamer.config import Settings
from wp_image_renamer.db import Base
from wp_image_renamer.images.service import (
    IncomingFile,
    add_images,
    list_images,
    set_generated_name,
    set_target_page,
)
from wp_image_renamer.naming.service import NamingError
from wp_image_renamer.sites.service import add_site
from wp_image_renamer.wordpress.auth import Credentials
from wp_image_renamer.wordpress.client import WordPressClient
from wp_image_renamer.wordpress.media import MediaItem

SITE = "https://example.com"
MEDIA = f"{SITE}/wp-json/wp/v2/media"
PAGE = {"id": 12, "title": "Elagage", "slug": "elagage"}


def reply(name, alt="Texte alternatif"):
    return SimpleNamespace(
        content=[
            SimpleNamespace(
                type="text", text=json.dumps({"filename": name, "altText": alt})
            )
        ]
    )


def fake_llm(*names):
    """Anthropic stand-in replying with the given filenames in turn."""
    llm = MagicMock()
    llm.messages.create.side_effect = [reply(name) for name in names]
    return llm


def media_item(media_id, title="", url=""):
    return MediaItem(id=media_id, title=title, alt_text="", url=url, thumbnail="")


def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (32, 32), (0, 128, 0)).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, upload_dir=tmp_path, llm_model="test-model")


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
    site = add_site(session, SITE, "Example", "admin", jwt_token="tok")
    set_cahier(
        session,
        site.id,
        CahierDesCharges(company_name="Jardins Dupont", chosen_cities=["Evreux"]),
        "",
    )
    return site


@pytest.fixture
def images(session, site, tmp_path):
    """Two staged images, both assigned to the Elagage page."""
    staged = add_images(
        session,
        site.id,
        [IncomingFile("a.png", png_bytes()), IncomingFile("b.png", png_bytes())],
        upload_dir=tmp_path,
    )
    for image in staged:
        set_target_page(session, site.id, image.id, PAGE)
    return staged


@pytest.fixture
def wp():
    with httpx.Client() as http:
        yield WordPressClient(http, Credentials(site_url=SITE, token="tok"))


class TestBuildImageContext:
    """Tests for build_image_context."""

    def test_context_from_image_and_cahier(self, images):
        cahier = CahierDesCharges(
            company_name="Jardins Dupont", chosen_cities=["Evreux", "Vernon"]
        )
        context = build_image_context(images[0], cahier, index=3)
        assert context.page_title == "Elagage"
        assert context.page_slug == "elagage"
        assert context.cities == ["Evreux", "Vernon"]
        assert context.original_filename == "a.png"
        assert context.image_index == 3


class TestGenerateNames:
    """Tests for generate_names."""

    def test_names_pending_images(self, session, site, images, settings):
        llm = fake_llm("elagage-evreux", "elagage-evreux")
        result = generate_names(session, site, llm, settings)

        assert result.total == 2
        assert result.succeeded == 2
        assert result.failed == 0
        names = [image.generated_name for image in list_images(session, site.id)]
        assert names == ["elagage-evreux", "elagage-evreux-1"]
        assert {image.status for image in images} == {"ready"}

    def test_sends_image_and_company(self, session, site, images, settings):
        llm = fake_llm("a", "b")
        generate_names(session, site, llm, settings)

        kwargs = llm.messages.create.call_args_list[0].kwargs
        assert kwargs["model"] == "test-model"
        content = kwargs["messages"][0]["content"]
        assert content[0]["type"] == "image"
        assert content[0]["source"]["media_type"] == "image/jpeg"
        assert "Jardins Dupont" in content[1]["text"]

    def test_skips_unassigned_and_named(self, session, site, images, settings):
        set_target_page(session, site.id, images[0].id, None)
        set_generated_name(session, site.id, images[1].id, "deja-nomme")
        llm = fake_llm()

        result = generate_names(session, site, llm, settings)

        assert result.total == 0
        llm.messages.create.assert_not_called()

    def test_failure_continues(self, session, site, images, settings):
        llm = fake_llm("!!!", "terrasse")
        result = generate_names(session, site, llm, settings)

        assert result.succeeded == 1
        assert result.failed == 1
        assert result.errors[0].startswith("a.png: ")
        assert images[0].status == "error"
        assert images[1].generated_name == "terrasse"


class TestRegenerateName:
    """Tests for regenerate_name."""

    def test_own_name_not_blocking(self, session, site, images, settings):
        set_generated_name(session, site.id, images[0].id, "elagage")
        set_generated_name(session, site.id, images[1].id, "terrasse")
        llm = fake_llm("elagage")

        suggestion = regenerate_name(session, site, images[0].id, llm, settings)

        assert suggestion.name == "elagage"
        assert images[0].generated_name == "elagage"
        assert images[0].status == "ready"

    def test_requires_target_page(self, session, site, images, settings):
        set_target_page(session, site.id, images[0].id, None)
        with pytest.raises(NamingError) as exc_info:
            regenerate_name(session, site, images[0].id, fake_llm(), settings)
        assert exc_info.value.code == "no_target_page"

    def test_failure_marks_error(self, session, site, images, settings):
        with pytest.raises(NamingError):
            regenerate_name(session, site, images[0].id, fake_llm("!!!"), settings)
        assert images[0].status == "error"


class TestUploadImages:
    """Tests for upload_images."""

    @respx.mock
    def test_uploads_named_images(self, session, site, images, settings, wp):
        set_generated_name(session, site.id, images[0].id, "elagage-evreux")
        upload = respx.post(MEDIA).mock(
            return_value=httpx.Response(
                201,
                json={
                    "id": 99,
                    "source_url": f"{SITE}/uploads/elagage-evreux.png",
                    "title": {"rendered": "elagage-evreux"},
                },
            )
        )

        result = upload_images(session, site, wp, settings)

        assert (result.total, result.succeeded) == (1, 1)
        request = upload.calls[0].request
        assert "elagage-evreux.png" in request.headers["Content-Disposition"]
        assert request.headers["Content-Type"] == "image/png"
        assert images[0].status == "uploaded"
        assert images[0].wordpress_media_id == 99
        assert images[0].wordpress_url.endswith("elagage-evreux.png")

    @respx.mock
    def test_refused_upload_recorded(self, session, site, images, settings, wp):
        set_generated_name(session, site.id, images[1].id, "terrasse")
        respx.post(MEDIA).mock(
            return_value=httpx.Response(500, json={"message": "Disk full"})
        )

        result = upload_images(session, site, wp, settings)

        assert result.failed == 1
        assert result.errors[0].startswith("b.png: ")
        assert images[1].status == "error"


class TestMediaMetadata:
    """Tests for media library suggestions and updates."""

    def test_suggest_without_download(self, settings):
        items = [
            media_item(1, url=f"{SITE}/a.jpg"),
            media_item(2, "Haie", f"{SITE}/b.jpg"),
        ]
        llm = fake_llm("photo-jardin", "haie-taillee")

        suggestions, result = suggest_media_metadata(
            llm, items, CahierDesCharges(company_name="Acme"), settings=settings
        )

        assert result.succeeded == 2
        assert suggestions[2] == MediaSuggestion("haie-taillee", "Texte alternatif")
        first_prompt = llm.messages.create.call_args_list[0].kwargs["messages"][0]
        assert "Image WordPress" in first_prompt["content"][0]["text"]

    @respx.mock
    def test_suggest_downloads_image(self, settings):
        respx.get(f"{SITE}/a.png").mock(
            return_value=httpx.Response(
                200, content=png_bytes(), headers={"content-type": "image/png"}
            )
        )
        items = [media_item(1, "A", f"{SITE}/a.png")]
        llm = fake_llm("jardin")

        with httpx.Client() as http:
            suggest_media_metadata(
                llm, items, CahierDesCharges(), http=http, settings=settings
            )

        content = llm.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["type"] == "image"

    def test_suggest_failure_labelled(self, settings):
        items = [media_item(7)]
        _, result = suggest_media_metadata(
            fake_llm("!!!"), items, CahierDesCharges(), settings=settings
        )
        assert result.errors[0].startswith("7: ")

    @respx.mock
    def test_apply_updates(self, wp):
        ok = respx.post(f"{MEDIA}/1").mock(
            return_value=httpx.Response(200, json={"id": 1})
        )
        respx.post(f"{MEDIA}/2").mock(return_value=httpx.Response(404))

        result = apply_media_updates(
            wp,
            {
                1: MediaSuggestion("jardin", "Un jardin"),
                2: {"title": "haie", "alt_text": "Une haie"},
            },
        )

        assert (result.total, result.succeeded, result.failed) == (2, 1, 1)
        assert result.errors[0].startswith("ID 2: ")
        assert json.loads(ok.calls[0].request.content) == {
            "title": "jardin",
            "alt_text": "Un jardin",
        }
