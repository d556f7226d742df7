"""Web GUI router for server-rendered HTML pages.

This module provides the /ui routes for the web GUI, using Jinja2 templates
for server-side rendering. It calls service modules directly (not HTTP
APIs), following the same dependency injection patterns as the JSON API
routers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

import anthropic
import httpx
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi import status as http_status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlalchemy.orm import Session

from web.deps import (
    get_credential_cache,
    get_db,
    get_http_client,
    get_optional_llm_client,
    get_settings_dep,
    require_gui_auth,
)
from web.routers.auth import set_auth_cookie
from web.routers.images import PageRef
from wp_image_renamer import __version__
from wp_image_renamer.batch import (
    MediaSuggestion,
    apply_media_updates,
    generate_names,
    regenerate_name,
    suggest_media_metadata,
    upload_images,
)
from wp_image_renamer.cahier.parser import cahier_to_text, parse_cahier
from wp_image_renamer.cahier.service import get_cahier, get_cahier_fields, set_cahier
from wp_image_renamer.config import Settings
from wp_image_renamer.images.service import (
    ImageNotFoundError,
    ImageRejectedError,
    IncomingFile,
    add_images,
    assign_page_to_selected,
    clear_images,
    clear_selection,
    list_images,
    remove_image,
    select_all,
    set_target_page,
    toggle_selection,
    update_image,
)
from wp_image_renamer.naming.service import NamingError
from wp_image_renamer.pdf import PdfExtractionError, read_pdf
from wp_image_renamer.security import AUTH_COOKIE_NAME, check_password
from wp_image_renamer.sites.models import Site
from wp_image_renamer.sites.service import (
    CredentialCache,
    SiteNotFoundError,
    connect_site,
    credentials_for,
    get_site,
    list_sites,
    remove_site,
)
from wp_image_renamer.types import AuthMethod, BatchResult
from wp_image_renamer.wordpress.client import WordPressClient
from wp_image_renamer.wordpress.elementor import inspect_page, replace_image
from wp_image_renamer.wordpress.errors import ElementorError, WordPressError
from wp_image_renamer.wordpress.media import MediaItem, list_media
from wp_image_renamer.wordpress.pages import list_pages

logger = logging.getLogger(__name__)

router = APIRouter()

templates = Jinja2Templates(directory=Path(__file__).parent.parent / "templates")

MEDIA_PER_PAGE = 24

# Type aliases for dependencies
DbSession = Annotated[Session, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings_dep)]
HttpClient = Annotated[httpx.Client, Depends(get_http_client)]
Cache = Annotated[CredentialCache, Depends(get_credential_cache)]
OptionalLlm = Annotated[anthropic.Anthropic | None, Depends(get_optional_llm_client)]
Gate = Depends(require_gui_auth)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=http_status.HTTP_303_SEE_OTHER)


def _not_found(request: Request, message: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request=request,
        name="error.html",
        context={"version": __version__, "message": message},
        status_code=http_status.HTTP_404_NOT_FOUND,
    )


def _client(site: Site, http: httpx.Client, cache: CredentialCache) -> WordPressClient:
    return WordPressClient(http, credentials_for(site, cache))


def render_workspace(
    request: Request,
    db: Session,
    site: Site,
    http: httpx.Client,
    cache: CredentialCache,
    settings: Settings,
    **extra: Any,
) -> HTMLResponse:
    """Render the site workspace with pages, cahier and staged images."""
    client = _client(site, http, cache)
    pages: list[Any] = []
    pages_error = None
    if client.credentials.has_auth:
        try:
            pages = list(list_pages(client).pages)
        except WordPressError as e:
            pages_error = str(e)
    else:
        pages_error = "Reconnect this site: its application password is not in memory."

    record = get_cahier(db, site.id)
    cahier = get_cahier_fields(db, site.id)
    images = list_images(db, site.id)

    context: dict[str, Any] = {
        "active_nav": "sites",
        "version": __version__,
        "site": site,
        "pages": pages,
        "pages_error": pages_error,
        "cahier": cahier,
        "cahier_text": record.raw_text if record else cahier_to_text(cahier),
        "images": images,
        "selected_count": sum(1 for img in images if img.selected),
        "to_name_count": sum(
            1 for img in images if img.target_page_id is not None and not img.generated_name
        ),
        "to_upload_count": sum(
            1
            for img in images
            if img.target_page_id is not None
            and img.generated_name
            and img.status != "uploaded"
        ),
        "uploaded_images": [img for img in images if img.wordpress_url],
        "llm_configured": bool(settings.anthropic_api_key),
        "message": None,
        "error": None,
        "batch_result": None,
        "inspection": None,
    }
    context.update(extra)
    return templates.TemplateResponse(
        request=request, name="site.html", context=context
    )


# Login


@router.get("/login", response_class=HTMLResponse, name="gui_login")
def login_page(request: Request, settings: AppSettings) -> Response:
    """Render the login page (or skip it when no password is configured)."""
    if not settings.app_password:
        return _redirect("/ui/")
    return templates.TemplateResponse(
        request=request,
        name="login.html",
        context={"version": __version__, "error": None},
    )


@router.post("/login", name="gui_login_submit", response_model=None)
def login_submit(
    request: Request,
    settings: AppSettings,
    password: str = Form(""),
) -> HTMLResponse | RedirectResponse:
    """Check the password and set the auth cookie."""
    if settings.app_password and not check_password(password, settings.app_password):
        return templates.TemplateResponse(
            request=request,
            name="login.html",
            context={"version": __version__, "error": "Incorrect password"},
            status_code=http_status.HTTP_401_UNAUTHORIZED,
        )
    response = _redirect("/ui/")
    set_auth_cookie(response, settings)
    return response


@router.post("/logout", name="gui_logout")
def logout() -> RedirectResponse:
    """Clear the auth cookie."""
    response = _redirect("/ui/login")
    response.delete_cookie(AUTH_COOKIE_NAME, path="/")
    return response


# Dashboard


def _render_dashboard(
    request: Request, db: Session, settings: Settings, error: str | None = None
) -> HTMLResponse:
    return templates.TemplateResponse(
        request=request,
        name="dashboard.html",
        context={
            "active_nav": "dashboard",
            "version": __version__,
            "sites": list_sites(db),
            "auth_methods": [m.value for m in AuthMethod],
            "llm_configured": bool(settings.anthropic_api_key),
            "password_required": bool(settings.app_password),
            "error": error,
        },
        status_code=(
            http_status.HTTP_400_BAD_REQUEST if error else http_status.HTTP_200_OK
        ),
    )


@router.get("/", response_class=HTMLResponse, name="gui_dashboard", dependencies=[Gate])
def dashboard(request: Request, db: DbSession, settings: AppSettings) -> HTMLResponse:
    """Render the dashboard: recent sites and the connect form."""
    return _render_dashboard(request, db, settings)


@router.post("/sites", name="gui_sites_connect", response_model=None, dependencies=[Gate])
def sites_connect(
    request: Request,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    url: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    auth_method: str = Form(AuthMethod.JWT.value),
) -> HTMLResponse | RedirectResponse:
    """Connect a site and open its workspace."""
    try:
        site, _ = connect_site(
            db, http, url, username, password, AuthMethod(auth_method), cache=cache
        )
    except (WordPressError, ValueError) as e:
        return _render_dashboard(request, db, settings, error=str(e))
    return _redirect(f"/ui/sites/{site.id}")


@router.post("/sites/{site_id}/delete", name="gui_sites_delete", dependencies=[Gate])
def sites_delete(site_id: str, db: DbSession, cache: Cache) -> RedirectResponse:
    """Delete a site with its cahier and images."""
    try:
        remove_site(db, site_id, cache=cache)
    except SiteNotFoundError:
        logger.info("Site %s already deleted", site_id)
    return _redirect("/ui/")


# Site workspace


@router.get(
    "/sites/{site_id}",
    response_class=HTMLResponse,
    name="gui_site",
    dependencies=[Gate],
)
def site_workspace(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
) -> HTMLResponse:
    """Render the workspace of a site."""
    try:
        site = get_site(db, site_id)
    except SiteNotFoundError:
        return _not_found(request, f"Site not found: {site_id}")
    return render_workspace(request, db, site, http, cache, settings)


@router.post("/sites/{site_id}/cahier", name="gui_cahier_save", dependencies=[Gate])
def cahier_save(
    site_id: str,
    db: DbSession,
    raw_text: str = Form(""),
) -> RedirectResponse:
    """Parse and store the brief text."""
    get_site(db, site_id)
    set_cahier(db, site_id, parse_cahier(raw_text), raw_text)
    return _redirect(f"/ui/sites/{site_id}#cahier")


@router.post(
    "/sites/{site_id}/cahier/pdf",
    name="gui_cahier_pdf",
    response_model=None,
    dependencies=[Gate],
)
def cahier_pdf(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    llm: OptionalLlm,
    file: UploadFile = File(...),
) -> HTMLResponse | RedirectResponse:
    """Import the brief from a PDF."""
    site = get_site(db, site_id)
    try:
        result = read_pdf(file.filename, file.file.read(), llm=llm, model=settings.llm_model)
    except PdfExtractionError as e:
        return render_workspace(request, db, site, http, cache, settings, error=str(e))
    set_cahier(db, site_id, parse_cahier(result.text), result.text)
    return _redirect(f"/ui/sites/{site_id}#cahier")


@router.post(
    "/sites/{site_id}/images",
    name="gui_images_add",
    response_model=None,
    dependencies=[Gate],
)
def images_add(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    files: list[UploadFile] = File(...),
) -> HTMLResponse | RedirectResponse:
    """Add images to the upload store."""
    site = get_site(db, site_id)
    incoming = [
        IncomingFile(
            filename=upload.filename or "image",
            data=upload.file.read(),
            content_type=upload.content_type,
        )
        for upload in files
        if upload.filename
    ]
    try:
        add_images(
            db,
            site_id,
            incoming,
            upload_dir=settings.upload_dir,
            max_bytes=settings.max_intake_bytes,
        )
    except ImageRejectedError as e:
        return render_workspace(request, db, site, http, cache, settings, error=str(e))
    return _redirect(f"/ui/sites/{site_id}#images")


@router.post(
    "/sites/{site_id}/images/clear", name="gui_images_clear", dependencies=[Gate]
)
def images_clear(site_id: str, db: DbSession) -> RedirectResponse:
    """Remove every staged image."""
    clear_images(db, site_id)
    return _redirect(f"/ui/sites/{site_id}#images")


@router.post(
    "/sites/{site_id}/images/{image_id}",
    name="gui_image_update",
    dependencies=[Gate],
)
def image_update(
    site_id: str,
    image_id: str,
    db: DbSession,
    page: str = Form(""),
    custom_instructions: str = Form(""),
    generated_name: str | None = Form(None),
    generated_alt_text: str | None = Form(None),
) -> RedirectResponse:
    """Save the target page, instructions and name of an image."""
    target = None
    if page:
        try:
            target = PageRef.model_validate_json(page).as_target()
        except ValidationError:
            logger.warning("Ignoring malformed page reference for image %s", image_id)
    updates: dict[str, Any] = {"custom_instructions": custom_instructions or None}
    if generated_name is not None:
        updates["generated_name"] = generated_name or None
    if generated_alt_text is not None:
        updates["generated_alt_text"] = generated_alt_text or None
    try:
        update_image(db, site_id, image_id, **updates)
        set_target_page(db, site_id, image_id, target)
    except ImageNotFoundError:
        logger.info("Image %s no longer exists", image_id)
    return _redirect(f"/ui/sites/{site_id}#images")


@router.post(
    "/sites/{site_id}/images/{image_id}/delete",
    name="gui_image_delete",
    dependencies=[Gate],
)
def image_delete(site_id: str, image_id: str, db: DbSession) -> RedirectResponse:
    """Remove a staged image."""
    try:
        remove_image(db, site_id, image_id)
    except ImageNotFoundError:
        logger.info("Image %s already deleted", image_id)
    return _redirect(f"/ui/sites/{site_id}#images")


@router.post(
    "/sites/{site_id}/images/{image_id}/toggle",
    name="gui_image_toggle",
    dependencies=[Gate],
)
def image_toggle(site_id: str, image_id: str, db: DbSession) -> RedirectResponse:
    """Toggle the selection of an image."""
    try:
        toggle_selection(db, site_id, image_id)
    except ImageNotFoundError:
        logger.info("Image %s no longer exists", image_id)
    return _redirect(f"/ui/sites/{site_id}#images")


@router.post(
    "/sites/{site_id}/selection", name="gui_selection", dependencies=[Gate]
)
def selection(
    site_id: str,
    db: DbSession,
    action: str = Form("none"),
    page: str = Form(""),
) -> RedirectResponse:
    """Select all, clear the selection, or assign a page to it."""
    if action == "all":
        select_all(db, site_id)
    elif action == "assign" and page:
        try:
            target = PageRef.model_validate_json(page).as_target()
        except ValidationError:
            logger.warning("Ignoring malformed page reference for selection")
        else:
            assign_page_to_selected(db, site_id, target)
    else:
        clear_selection(db, site_id)
    return _redirect(f"/ui/sites/{site_id}#images")


def _llm_missing(
    request: Request,
    db: Session,
    site: Site,
    http: httpx.Client,
    cache: CredentialCache,
    settings: Settings,
) -> HTMLResponse:
    return render_workspace(
        request,
        db,
        site,
        http,
        cache,
        settings,
        error="ANTHROPIC_API_KEY is not configured",
    )


@router.post(
    "/sites/{site_id}/images/{image_id}/regenerate",
    name="gui_image_regenerate",
    response_class=HTMLResponse,
    dependencies=[Gate],
)
def image_regenerate(
    request: Request,
    site_id: str,
    image_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    llm: OptionalLlm,
) -> HTMLResponse:
    """Generate a new name for one image."""
    site = get_site(db, site_id)
    if llm is None:
        return _llm_missing(request, db, site, http, cache, settings)
    try:
        suggestion = regenerate_name(db, site, image_id, llm, settings=settings)
    except (ImageNotFoundError, NamingError) as e:
        return render_workspace(request, db, site, http, cache, settings, error=str(e))
    return render_workspace(
        request, db, site, http, cache, settings, message=f"New name: {suggestion.name}"
    )


@router.post(
    "/sites/{site_id}/batch/names",
    name="gui_batch_names",
    response_class=HTMLResponse,
    dependencies=[Gate],
)
def batch_names(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    llm: OptionalLlm,
) -> HTMLResponse:
    """Name every image with a target page and no name yet."""
    site = get_site(db, site_id)
    if llm is None:
        return _llm_missing(request, db, site, http, cache, settings)
    result = generate_names(db, site, llm, settings=settings)
    return render_workspace(
        request, db, site, http, cache, settings, batch_result=("Naming", result)
    )


@router.post(
    "/sites/{site_id}/batch/upload",
    name="gui_batch_upload",
    response_class=HTMLResponse,
    dependencies=[Gate],
)
def batch_upload(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
) -> HTMLResponse:
    """Upload every named image to WordPress."""
    site = get_site(db, site_id)
    client = _client(site, http, cache)
    if not client.credentials.has_auth:
        return render_workspace(
            request,
            db,
            site,
            http,
            cache,
            settings,
            error="Reconnect this site before uploading.",
        )
    result = upload_images(db, site, client, settings=settings)
    return render_workspace(
        request, db, site, http, cache, settings, batch_result=("Upload", result)
    )


# Elementor


@router.post(
    "/sites/{site_id}/elementor/inspect",
    name="gui_elementor_inspect",
    response_class=HTMLResponse,
    dependencies=[Gate],
)
def elementor_inspect(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    page_id: int = Form(...),
) -> HTMLResponse:
    """Show the image widgets of a page layout."""
    site = get_site(db, site_id)
    try:
        inspection = inspect_page(_client(site, http, cache), page_id)
    except WordPressError as e:
        return render_workspace(request, db, site, http, cache, settings, error=str(e))
    return render_workspace(
        request, db, site, http, cache, settings, inspection=inspection
    )


@router.post(
    "/sites/{site_id}/elementor/replace",
    name="gui_elementor_replace",
    response_class=HTMLResponse,
    dependencies=[Gate],
)
def elementor_replace(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    page_id: int = Form(...),
    widget_id: str = Form(...),
    new_image_url: str = Form(...),
    new_image_id: int | None = Form(None),
) -> HTMLResponse:
    """Swap the image of a widget and verify the change."""
    site = get_site(db, site_id)
    client = _client(site, http, cache)
    try:
        replace_image(client, page_id, widget_id, new_image_url, new_image_id)
    except (WordPressError, ElementorError) as e:
        return render_workspace(request, db, site, http, cache, settings, error=str(e))
    return render_workspace(
        request,
        db,
        site,
        http,
        cache,
        settings,
        message=f"Image replaced in widget {widget_id}",
        inspection=inspect_page(client, page_id),
    )


# Media library


def _render_media(
    request: Request,
    site: Site,
    http: httpx.Client,
    cache: CredentialCache,
    settings: Settings,
    page: int = 1,
    suggestions: dict[int, MediaSuggestion] | None = None,
    batch_result: tuple[str, BatchResult] | None = None,
    error: str | None = None,
) -> HTMLResponse:
    media_page = None
    try:
        media_page = list_media(_client(site, http, cache), page=page, per_page=MEDIA_PER_PAGE)
    except WordPressError as e:
        error = error or str(e)
    return templates.TemplateResponse(
        request=request,
        name="media.html",
        context={
            "active_nav": "sites",
            "version": __version__,
            "site": site,
            "media_page": media_page,
            "suggestions": suggestions or {},
            "batch_result": batch_result,
            "llm_configured": bool(settings.anthropic_api_key),
            "error": error,
        },
    )


@router.get(
    "/sites/{site_id}/media",
    response_class=HTMLResponse,
    name="gui_media",
    dependencies=[Gate],
)
def media_library(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    page: int = Query(1, ge=1),
) -> HTMLResponse:
    """Render one page of the media library."""
    try:
        site = get_site(db, site_id)
    except SiteNotFoundError:
        return _not_found(request, f"Site not found: {site_id}")
    return _render_media(request, site, http, cache, settings, page=page)


@router.post(
    "/sites/{site_id}/media/suggest",
    response_class=HTMLResponse,
    name="gui_media_suggest",
    dependencies=[Gate],
)
async def media_suggest(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
    llm: OptionalLlm,
) -> HTMLResponse:
    """Suggest titles and alt texts for the selected media items."""
    form = await request.form()
    try:
        site = await run_in_threadpool(get_site, db, site_id)
    except SiteNotFoundError:
        return _not_found(request, f"Site not found: {site_id}")
    page = int(str(form.get("page") or 1))
    if llm is None:
        return await run_in_threadpool(
            _render_media,
            request,
            site,
            http,
            cache,
            settings,
            page=page,
            error="ANTHROPIC_API_KEY is not configured",
        )
    items = [
        MediaItem(
            id=int(str(media_id)),
            title=str(form.get(f"title_{media_id}") or ""),
            alt_text="",
            url=str(form.get(f"url_{media_id}") or ""),
            thumbnail="",
        )
        for media_id in form.getlist("media_id")
    ]
    cahier_fields = await run_in_threadpool(get_cahier_fields, db, site_id)
    suggestions, result = await run_in_threadpool(
        suggest_media_metadata,
        llm,
        items,
        cahier_fields,
        http=http,
        settings=settings,
    )
    return await run_in_threadpool(
        _render_media,
        request,
        site,
        http,
        cache,
        settings,
        page=page,
        suggestions=suggestions,
        batch_result=("Suggestions", result),
    )


@router.post(
    "/sites/{site_id}/media/apply",
    response_class=HTMLResponse,
    name="gui_media_apply",
    dependencies=[Gate],
)
async def media_apply(
    request: Request,
    site_id: str,
    db: DbSession,
    http: HttpClient,
    cache: Cache,
    settings: AppSettings,
) -> HTMLResponse:
    """Write the reviewed titles and alt texts to WordPress."""
    form = await request.form()
    try:
        site = await run_in_threadpool(get_site, db, site_id)
    except SiteNotFoundError:
        return _not_found(request, f"Site not found: {site_id}")
    updates = {
        int(str(media_id)): MediaSuggestion(
            title=str(form.get(f"new_title_{media_id}") or ""),
            alt_text=str(form.get(f"new_alt_{media_id}") or ""),
        )
        for media_id in form.getlist("media_id")
    }
    result = await run_in_threadpool(
        apply_media_updates, _client(site, http, cache), updates
    )
    return await run_in_threadpool(
        _render_media,
        request,
        site,
        http,
        cache,
        settings,
        page=int(str(form.get("page") or 1)),
        batch_result=("Update", result),
    )
