"""Thin CLI wrapper for wp_image_renamer.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from wp_image_renamer import __version__
from wp_image_renamer.config import get_settings, print_settings_json

app = typer.Typer(
    name="wp-image-renamer",
    help="WordPress Image Renamer - SEO names, alt texts and uploads for WordPress",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"wp-image-renamer version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """WordPress Image Renamer - SEO names, alt texts and uploads for WordPress."""


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Storage:[/bold]")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print(f"  Upload directory:    {settings.upload_dir}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]Access:[/bold]")
        console.print(f"  Password required:   {bool(settings.app_password)}")
        console.print(f"  Secure cookies:      {settings.secure_cookies}")
        console.print()
        console.print("[bold]LLM:[/bold]")
        console.print(f"  API key configured:  {bool(settings.anthropic_api_key)}")
        console.print(f"  Model:               {settings.llm_model}")
        console.print(f"  Max tokens:          {settings.llm_max_tokens}")
        console.print()
        console.print("[bold]Limits:[/bold]")
        console.print(f"  Request timeout (s): {settings.request_timeout}")
        console.print(f"  Max intake bytes:    {settings.max_intake_bytes}")
        console.print(f"  Max upload bytes:    {settings.max_upload_bytes}")
        console.print(f"  Vision max size:     {settings.vision_max_dimension}px")


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8000,
    reload: Annotated[
        bool, typer.Option("--reload", help="Reload on code changes")
    ] = False,
) -> None:
    """Run the web application (API and GUI)."""
    import uvicorn

    settings = get_settings()
    console.print(f"[bold]Serving on http://{host}:{port}/ui/[/bold]")
    uvicorn.run(
        "web.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


sites_app = typer.Typer(help="Manage stored WordPress sites")
app.add_typer(sites_app, name="sites")


@sites_app.command("list")
def sites_list(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List stored sites, most recently added first."""
    from wp_image_renamer.db import create_all_tables, get_engine, get_session_factory
    from wp_image_renamer.sites.service import list_sites

    engine = get_engine()
    create_all_tables(engine)
    factory = get_session_factory(engine)

    with factory() as session:
        sites = list_sites(session)

        if not sites:
            if json_output:
                console.print("[]")
            else:
                console.print("[yellow]No sites found[/yellow]")
            return

        if json_output:
            console.print(json.dumps([s.to_dict() for s in sites], indent=2))
        else:
            console.print(f"[bold]Found {len(sites)} site(s):[/bold]")
            console.print()
            for s in sites:
                console.print(f"  [green]{s.id}[/green]")
                console.print(f"    Name: {s.name or '-'}")
                console.print(f"    URL: {s.url}")
                console.print(f"    Auth: {s.auth_method} ({s.username})")
                console.print(f"    Status: {s.status}")
                console.print()


@sites_app.command("remove")
def sites_remove(
    site_id: Annotated[str, typer.Argument(help="Site ID to remove")],
) -> None:
    """Remove a site with its cahier and staged images."""
    from wp_image_renamer.db import create_all_tables, get_engine, get_session_factory
    from wp_image_renamer.sites.service import SiteNotFoundError, remove_site

    engine = get_engine()
    create_all_tables(engine)
    factory = get_session_factory(engine)

    with factory() as session:
        try:
            remove_site(session, site_id)
        except SiteNotFoundError:
            console.print(f"[red]Site not found: {site_id}[/red]")
            raise typer.Exit(code=1) from None
        session.commit()

    console.print(f"[green]Removed site {site_id}[/green]")


cahier_app = typer.Typer(help="Work with cahiers des charges")
app.add_typer(cahier_app, name="cahier")


@cahier_app.command("parse")
def cahier_parse(
    path: Annotated[Path, typer.Argument(help="Text file holding the brief")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Parse a brief and show the fields that were found."""
    from wp_image_renamer.cahier.parser import cahier_to_text, parse_cahier

    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(code=1)

    parsed = parse_cahier(path.read_text(encoding="utf-8"))
    if json_output:
        console.print(parsed.model_dump_json(indent=2, exclude_none=True))
    elif not parsed.has_data():
        console.print("[yellow]No field found[/yellow]")
    else:
        console.print(cahier_to_text(parsed), markup=False)


pdf_app = typer.Typer(help="Extract text from PDF briefs")
app.add_typer(pdf_app, name="pdf")


@pdf_app.command("extract")
def pdf_extract(
    path: Annotated[Path, typer.Argument(help="PDF file")],
    use_llm: Annotated[
        bool,
        typer.Option("--llm/--no-llm", help="Transcribe scanned PDFs with the LLM"),
    ] = True,
) -> None:
    """Print the text of a PDF."""
    from wp_image_renamer.pdf import PdfExtractionError, read_pdf

    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(code=1)

    settings = get_settings()
    llm = None
    if use_llm and settings.anthropic_api_key:
        import anthropic

        llm = anthropic.Anthropic(api_key=settings.anthropic_api_key)

    try:
        result = read_pdf(path.name, path.read_bytes(), llm=llm, model=settings.llm_model)
    except PdfExtractionError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None

    console.print(f"[bold]{result.pages} page(s)[/bold]")
    console.print(result.text, markup=False)


if __name__ == "__main__":
    app()
