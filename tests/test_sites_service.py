"""Tests for the site store and connection workflow."""

from pathlib import Path

import httpx
import pytest
import respx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from wp_image_renamer.db import Base
from wp_image_renamer.images.service import IncomingFile, add_images, list_images
from wp_image_renamer.sites.service import (
    CredentialCache,
    SiteNotFoundError,
    add_site,
    connect_site,
    credentials_for,
    find_site_by_url,
    get_site,
    list_sites,
    remove_site,
    update_site,
    validate_site_url,
)
from wp_image_renamer.types import AuthMethod, SiteStatus
from wp_image_renamer.wordpress.errors import WordPressError

SITE = "https://example.com"


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def session(engine):
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()


class TestCredentialCache:
    """Tests for CredentialCache."""

    def test_set_get_discard(self):
        cache = CredentialCache()
        cache.set("a", "pw")
        assert cache.get("a") == "pw"
        assert "a" in cache
        cache.discard("a")
        assert cache.get("a") is None
        cache.discard("a")


class TestSiteStore:
    """Tests for add/get/list/update/remove."""

    def test_add_site(self, session):
        site = add_site(session, "example.com/", "Example", "admin")
        assert site.url == SITE
        assert site.auth_method == "jwt"
        assert site.status == "connected"
        assert site.last_connected is not None
        assert get_site(session, site.id) is site

    def test_add_is_upsert_by_url(self, session):
        first = add_site(session, SITE, "Old", "admin")
        second = add_site(
            session,
            "HTTPS://EXAMPLE.COM",
            "New",
            "editor",
            auth_method=AuthMethod.APPLICATION_PASSWORD,
        )
        assert second.id == first.id
        assert second.name == "New"
        assert second.auth_method == "application_password"
        assert len(list_sites(session)) == 1

    def test_find_by_url_ignores_case(self, session):
        site = add_site(session, SITE, "Example", "admin")
        assert find_site_by_url(session, "https://Example.COM/") is site
        assert find_site_by_url(session, "https://other.com") is None

    def test_list_all(self, session):
        add_site(session, "https://a.com", "A", "admin")
        add_site(session, "https://b.com", "B", "admin")
        assert len(list_sites(session)) == 2

    def test_get_missing(self, session):
        with pytest.raises(SiteNotFoundError) as exc_info:
            get_site(session, "missing")
        assert exc_info.value.code == "site_not_found"

    def test_update(self, session):
        site = add_site(session, SITE, "Example", "admin")
        updated = update_site(session, site.id, name="Renamed", status="error")
        assert updated.name == "Renamed"
        assert updated.status == SiteStatus.ERROR.value

    def test_update_rejects_unknown_field(self, session):
        site = add_site(session, SITE, "Example", "admin")
        with pytest.raises(ValueError):
            update_site(session, site.id, url="https://evil.com")

    def test_remove_deletes_images_and_files(self, session, tmp_path):
        site = add_site(session, SITE, "Example", "admin")
        images = add_images(
            session,
            site.id,
            [IncomingFile("a.jpg", b"not really a jpeg")],
            upload_dir=tmp_path,
        )
        stored = images[0].stored_path
        cache = CredentialCache()
        cache.set(site.id, "pw")

        remove_site(session, site.id, cache=cache)

        assert list_images(session, site.id) == []
        assert site.id not in cache
        assert not Path(stored).exists()

    def test_to_dict_hides_token(self, session):
        site = add_site(session, SITE, "Example", "admin", jwt_token="secret")
        data = site.to_dict()
        assert data["has_token"] is True
        assert "secret" not in str(data)


class TestCredentialsFor:
    """Tests for credentials_for."""

    def test_jwt_token(self, session):
        site = add_site(session, SITE, "Example", "admin", jwt_token="tok")
        creds = credentials_for(site, CredentialCache())
        assert creds.auth_header() == "Bearer tok"

    def test_cached_app_password(self, session):
        site = add_site(
            session, SITE, "Example", "admin", AuthMethod.APPLICATION_PASSWORD
        )
        cache = CredentialCache()
        assert not credentials_for(site, cache).has_auth
        cache.set(site.id, "pw")
        assert credentials_for(site, cache).has_auth


class TestValidateSiteUrl:
    """Tests for validate_site_url."""

    def test_normalizes(self):
        assert validate_site_url("example.com/") == SITE

    def test_rejects_garbage(self):
        with pytest.raises(WordPressError) as exc_info:
            validate_site_url("https://")
        assert exc_info.value.code == "invalid_url"
        assert exc_info.value.status_code == 400


class TestConnectSite:
    """Tests for connect_site."""

    @respx.mock
    def test_app_password_cached_not_stored(self, session):
        respx.get(f"{SITE}/wp-json/wp/v2/users/me").mock(
            return_value=httpx.Response(200, json={"id": 1})
        )
        respx.get(f"{SITE}/wp-json").mock(
            return_value=httpx.Response(200, json={"name": "Example"})
        )
        cache = CredentialCache()
        with httpx.Client() as http:
            site, result = connect_site(
                session,
                http,
                "example.com",
                "admin",
                "app pass",
                AuthMethod.APPLICATION_PASSWORD,
                cache=cache,
            )

        assert site.name == "Example"
        assert site.jwt_token is None
        assert cache.get(site.id) == "app pass"
        assert result.user_id == 1

    @respx.mock
    def test_jwt_token_persisted(self, session):
        respx.post(f"{SITE}/wp-json/jwt-auth/v1/token").mock(
            return_value=httpx.Response(200, json={"token": "jwt"})
        )
        respx.get(f"{SITE}/wp-json/wp/v2/users/me").mock(
            return_value=httpx.Response(200, json={"id": 1})
        )
        respx.get(f"{SITE}/wp-json").mock(
            return_value=httpx.Response(200, json={"name": "Example"})
        )
        cache = CredentialCache()
        with httpx.Client() as http:
            site, _ = connect_site(session, http, SITE, "admin", "pw", cache=cache)

        assert site.jwt_token == "jwt"
        assert site.id not in cache

    def test_missing_fields(self, session):
        with httpx.Client() as http, pytest.raises(WordPressError) as exc_info:
            connect_site(session, http, SITE, "admin", "")
        assert exc_info.value.code == "missing_fields"

    @respx.mock
    def test_failure_stores_nothing(self, session):
        respx.get(f"{SITE}/wp-json/wp/v2/users/me").mock(
            return_value=httpx.Response(401)
        )
        with httpx.Client() as http, pytest.raises(WordPressError):
            connect_site(
                session, http, SITE, "admin", "bad", AuthMethod.APPLICATION_PASSWORD
            )
        assert list_sites(session) == []
