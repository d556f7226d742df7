"""Tests for the WordPress REST layer: auth, client, pages and media.

HTTP traffic is mocked with respx.
"""

import base64
import json

import httpx
import pytest
import respx

from wp_image_renamer.types import AuthMethod
from wp_image_renamer.wordpress.auth import (
    Credentials,
    basic_auth_header,
    bearer_auth_header,
    normalize_url,
)
from wp_image_renamer.wordpress.client import (
    WordPressClient,
    error_message,
    get_jwt_token,
    verify_connection,
)
from wp_image_renamer.wordpress.errors import WordPressError
from wp_image_renamer.wordpress.media import (
    format_media_item,
    get_extension,
    get_mime_type,
    list_media,
    update_media,
    upload_media,
)
from wp_image_renamer.wordpress.pages import filter_long_tail_pages, list_pages

SITE = "https://example.com"


@pytest.fixture
def http():
    with httpx.Client() as client:
        yield client


@pytest.fixture
def wp(http):
    """Client authenticated with an application password."""
    return WordPressClient(
        http, Credentials(site_url=SITE, username="admin", app_password="abcd efgh")
    )


class TestAuth:
    """Tests for URL normalization and auth headers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("example.com", "https://example.com"),
            ("https://example.com/", "https://example.com"),
            ("  http://example.com//  ", "http://example.com"),
            ("HTTPS://Example.com/", "HTTPS://Example.com"),
        ],
    )
    def test_normalize_url(self, raw, expected):
        assert normalize_url(raw) == expected

    def test_basic_header(self):
        header = basic_auth_header("admin", "pass")
        assert header == "Basic " + base64.b64encode(b"admin:pass").decode()

    def test_bearer_header(self):
        assert bearer_auth_header("tok") == "Bearer tok"

    def test_token_preferred(self):
        """A JWT token wins over an application password."""
        creds = Credentials(SITE, token="tok", username="admin", app_password="pw")
        assert creds.auth_header() == "Bearer tok"

    def test_no_auth_raises(self):
        """Missing credentials should raise auth_required."""
        creds = Credentials(SITE, username="admin")
        assert not creds.has_auth
        with pytest.raises(WordPressError) as exc_info:
            creds.auth_header()
        assert exc_info.value.code == "auth_required"
        assert exc_info.value.status_code == 401


class TestErrorMessage:
    """Tests for error_message."""

    def test_json_message(self):
        response = httpx.Response(400, json={"message": "Bad thing"})
        assert error_message(response) == "Bad thing"

    def test_text_body(self):
        response = httpx.Response(500, text="Server exploded")
        assert error_message(response) == "Server exploded"

    def test_fallback(self):
        response = httpx.Response(404, json={"code": "x"})
        assert error_message(response, "Nope") == "Nope"


class TestClient:
    """Tests for WordPressClient requests."""

    @respx.mock
    def test_sends_authorization(self, wp):
        route = respx.get(f"{SITE}/wp-json/wp/v2/pages").mock(
            return_value=httpx.Response(200, json=[])
        )
        wp.get("pages")
        assert route.called
        sent = route.calls.last.request.headers["Authorization"]
        assert sent == basic_auth_header("admin", "abcd efgh")

    @respx.mock
    def test_http_error(self, wp):
        respx.get(f"{SITE}/wp-json/wp/v2/pages").mock(
            return_value=httpx.Response(403, json={"message": "Forbidden"})
        )
        with pytest.raises(WordPressError) as exc_info:
            wp.get("pages")
        assert exc_info.value.status_code == 403
        assert str(exc_info.value) == "Forbidden"

    @respx.mock
    def test_connection_error(self, wp):
        respx.get(f"{SITE}/wp-json/wp/v2/pages").mock(
            side_effect=httpx.ConnectError("refused")
        )
        with pytest.raises(WordPressError) as exc_info:
            wp.get("pages")
        assert exc_info.value.code == "connection_error"


class TestVerifyConnection:
    """Tests for connection checks."""

    @respx.mock
    def test_application_password(self, http):
        respx.get(f"{SITE}/wp-json/wp/v2/users/me").mock(
            return_value=httpx.Response(200, json={"id": 7})
        )
        respx.get(f"{SITE}/wp-json").mock(
            return_value=httpx.Response(200, json={"name": "My Site"})
        )
        result = verify_connection(
            http, "example.com/", "admin", "pw", AuthMethod.APPLICATION_PASSWORD
        )
        assert result.site_name == "My Site"
        assert result.url == SITE
        assert result.user_id == 7
        assert result.token is None
        assert "token" not in result.to_dict()

    @respx.mock
    def test_application_password_invalid(self, http):
        respx.get(f"{SITE}/wp-json/wp/v2/users/me").mock(
            return_value=httpx.Response(401)
        )
        with pytest.raises(WordPressError) as exc_info:
            verify_connection(http, SITE, "admin", "bad", AuthMethod.APPLICATION_PASSWORD)
        assert exc_info.value.code == "invalid_credentials"
        assert exc_info.value.status_code == 401

    @respx.mock
    def test_site_name_falls_back_to_url(self, http):
        respx.get(f"{SITE}/wp-json/wp/v2/users/me").mock(
            return_value=httpx.Response(200, json={"id": 1})
        )
        respx.get(f"{SITE}/wp-json").mock(return_value=httpx.Response(500))
        result = verify_connection(
            http, SITE, "admin", "pw", AuthMethod.APPLICATION_PASSWORD
        )
        assert result.site_name == SITE

    @respx.mock
    def test_jwt(self, http):
        token_route = respx.post(f"{SITE}/wp-json/jwt-auth/v1/token").mock(
            return_value=httpx.Response(200, json={"token": "jwt-123"})
        )
        me_route = respx.get(f"{SITE}/wp-json/wp/v2/users/me").mock(
            return_value=httpx.Response(200, json={"id": 3})
        )
        respx.get(f"{SITE}/wp-json").mock(
            return_value=httpx.Response(200, json={"name": "JWT Site"})
        )
        result = verify_connection(http, SITE, "admin", "pw", AuthMethod.JWT)

        assert json.loads(token_route.calls.last.request.content) == {
            "username": "admin",
            "password": "pw",
        }
        assert me_route.calls.last.request.headers["Authorization"] == "Bearer jwt-123"
        assert result.to_dict() == {
            "site": {"name": "JWT Site", "url": SITE, "user_id": 3},
            "token": "jwt-123",
        }

    @respx.mock
    def test_jwt_plugin_missing(self, http):
        respx.post(f"{SITE}/wp-json/jwt-auth/v1/token").mock(
            return_value=httpx.Response(404)
        )
        with pytest.raises(WordPressError) as exc_info:
            get_jwt_token(http, SITE, "admin", "pw")
        assert exc_info.value.code == "jwt_plugin_missing"

    @respx.mock
    def test_jwt_bad_credentials(self, http):
        respx.post(f"{SITE}/wp-json/jwt-auth/v1/token").mock(
            return_value=httpx.Response(403, json={"message": "Wrong password"})
        )
        with pytest.raises(WordPressError) as exc_info:
            get_jwt_token(http, SITE, "admin", "pw")
        assert exc_info.value.code == "invalid_credentials"
        assert str(exc_info.value) == "Wrong password"


class TestPages:
    """Tests for page listing and long-tail filtering."""

    def test_filter_long_tail(self):
        pages = [
            {"id": 1, "slug": "accueil", "parent": 0},
            {"id": 2, "slug": "paysagiste-evreux-27000", "parent": 0},
            {"id": 3, "slug": "elagage-evreux", "parent": 2},
            {"id": 4, "slug": "services", "parent": 0},
            {"id": 5, "slug": "taille-haies", "parent": 4},
            {"id": 6, "slug": "orphan", "parent": 99},
        ]
        kept = [p["id"] for p in filter_long_tail_pages(pages)]
        assert kept == [1, 2, 4, 5, 6]

    @respx.mock
    def test_list_pages_follows_pagination(self, wp):
        route = respx.get(f"{SITE}/wp-json/wp/v2/pages")
        route.side_effect = [
            httpx.Response(
                200,
                json=[
                    {"id": 1, "title": {"rendered": "Accueil"}, "slug": "accueil"},
                    {"id": 2, "title": {"rendered": "Evreux"}, "slug": "evreux-27000"},
                ],
                headers={"X-WP-TotalPages": "2"},
            ),
            httpx.Response(
                200,
                json=[
                    {
                        "id": 3,
                        "title": {"rendered": "Elagage Evreux"},
                        "slug": "elagage",
                        "parent": 2,
                    }
                ],
                headers={"X-WP-TotalPages": "2"},
            ),
        ]
        listing = list_pages(wp)

        assert route.call_count == 2
        assert listing.total_before_filter == 3
        assert listing.total == 2
        assert listing.pages[0]["title"] == "Accueil"
        assert listing.to_dict()["total"] == 2

    @respx.mock
    def test_list_pages_invalid_auth(self, wp):
        respx.get(f"{SITE}/wp-json/wp/v2/pages").mock(return_value=httpx.Response(401))
        with pytest.raises(WordPressError) as exc_info:
            list_pages(wp)
        assert exc_info.value.code == "invalid_auth"


class TestMedia:
    """Tests for media library operations."""

    @pytest.mark.parametrize(
        ("filename", "extension", "mime"),
        [
            ("photo.JPG", "jpg", "image/jpeg"),
            ("logo.png", "png", "image/png"),
            ("anim.gif", "gif", "image/gif"),
            ("noext", "jpg", "image/jpeg"),
        ],
    )
    def test_extension_and_mime(self, filename, extension, mime):
        assert get_extension(filename) == extension
        assert get_mime_type(extension) == mime

    def test_format_media_item_thumbnail_fallback(self):
        raw = {
            "id": 10,
            "title": {"rendered": "Terrasse"},
            "alt_text": "",
            "source_url": "https://example.com/terrasse.jpg",
            "media_details": {
                "width": 800,
                "height": 600,
                "sizes": {"medium": {"source_url": "https://example.com/t-300.jpg"}},
            },
        }
        item = format_media_item(raw)
        assert item.title == "Terrasse"
        assert item.thumbnail == "https://example.com/t-300.jpg"
        assert (item.width, item.height) == (800, 600)

    @respx.mock
    def test_list_media(self, wp):
        route = respx.get(f"{SITE}/wp-json/wp/v2/media").mock(
            return_value=httpx.Response(
                200,
                json=[{"id": 1, "source_url": "https://example.com/a.jpg"}],
                headers={"X-WP-TotalPages": "3", "X-WP-Total": "41"},
            )
        )
        media_page = list_media(wp, page=2, per_page=20)

        params = route.calls.last.request.url.params
        assert params["media_type"] == "image"
        assert params["page"] == "2"
        assert media_page.total == 41
        assert media_page.total_pages == 3
        assert media_page.items[0].thumbnail == "https://example.com/a.jpg"

    @respx.mock
    def test_update_media_sends_only_given_fields(self, wp):
        route = respx.post(f"{SITE}/wp-json/wp/v2/media/5").mock(
            return_value=httpx.Response(
                200, json={"id": 5, "title": {"rendered": "t"}, "alt_text": "new alt"}
            )
        )
        result = update_media(wp, 5, alt_text="new alt")

        assert json.loads(route.calls.last.request.content) == {"alt_text": "new alt"}
        assert result == {"id": 5, "title": "t", "alt_text": "new alt"}

    @respx.mock
    def test_upload_media(self, wp):
        upload = respx.post(f"{SITE}/wp-json/wp/v2/media").mock(
            return_value=httpx.Response(
                201,
                json={
                    "id": 42,
                    "source_url": "https://example.com/terrasse-bois.png",
                    "title": {"rendered": "terrasse-bois"},
                },
            )
        )
        alt = respx.post(f"{SITE}/wp-json/wp/v2/media/42").mock(
            return_value=httpx.Response(200, json={"id": 42})
        )
        media = upload_media(wp, b"data", "IMG_001.png", "terrasse-bois", alt_text="Alt")

        headers = upload.calls.last.request.headers
        assert headers["Content-Type"] == "image/png"
        assert 'filename="terrasse-bois.png"' in headers["Content-Disposition"]
        assert json.loads(alt.calls.last.request.content) == {"alt_text": "Alt"}
        assert media.id == 42
        assert media.filename == "terrasse-bois.png"

    @respx.mock
    def test_upload_survives_alt_failure(self, wp):
        respx.post(f"{SITE}/wp-json/wp/v2/media").mock(
            return_value=httpx.Response(201, json={"id": 9, "source_url": "u"})
        )
        respx.post(f"{SITE}/wp-json/wp/v2/media/9").mock(
            return_value=httpx.Response(500)
        )
        media = upload_media(wp, b"data", "a.jpg", "name", alt_text="Alt")
        assert media.id == 9
        assert media.title == "name"

    @respx.mock
    def test_upload_without_media_id(self, wp):
        respx.post(f"{SITE}/wp-json/wp/v2/media").mock(
            return_value=httpx.Response(201, json={"source_url": "u"})
        )
        with pytest.raises(WordPressError) as exc_info:
            upload_media(wp, b"data", "a.jpg", "name", alt_text="Alt")
        assert exc_info.value.code == "upload_error"

    def test_upload_too_large(self, wp):
        with pytest.raises(WordPressError) as exc_info:
            upload_media(wp, b"x" * 2048, "a.jpg", "name", max_bytes=1024)
        assert exc_info.value.code == "file_too_large"
