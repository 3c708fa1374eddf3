import typer
from pathlib import Path
from typing import Optional

from .config import ConfigError, Settings, DOCUMENT_TYPE
from .feed.accumulator import Feed, FeedError
from .prismic.client import PrismicClient
from .prismic.richtext import as_text
from .site.build import build_site, first_page
from .site.render import RenderError, SiteRenderer
from .utils.format_date import format_date
from .utils.io_utils import write_jsonl
from .utils.logging_config import setup_logging
from .utils.reading_time import reading_time

app = typer.Typer(help="spacetraveling blog: Prismic feed and static site builder")


def _settings(**overrides) -> Settings:
    try:
        return Settings.from_env().with_overrides(**overrides)
    except ConfigError as e:
        typer.secho(f"Configuração inválida: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def make_client(settings: Settings) -> PrismicClient:
    return PrismicClient(
        settings.api_endpoint,
        access_token=settings.access_token,
        timeout=settings.fetch_timeout,
    )


def _fail(e: Exception) -> None:
    typer.secho(f"Erro: {e}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _print_post(post) -> None:
    typer.secho(post.title, bold=True)
    if post.subtitle:
        typer.echo(f"  {post.subtitle}")
    typer.echo(f"  {format_date(post.published_at)} · {post.author}")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Também grava o log neste arquivo"),
    structured: bool = typer.Option(False, "--json-log", help="Arquivo de log em JSON lines"),
):
    try:
        level = log_level or Settings.from_env().log_level
    except ConfigError:
        level = log_level or "INFO"
    try:
        setup_logging(level, log_file=log_file, structured=structured)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level")


@app.command("build")
def build(
    out: Path = typer.Option(Path("dist"), "--out", "-o", help="Diretório de saída"),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1, help="Posts por página da listagem"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", min=1, help="Limite de páginas da listagem"),
    workers: int = typer.Option(8, "--workers", min=1, help="Downloads de posts em paralelo"),
    base_url: str = typer.Option("/", "--base-url", help="Prefixo dos links do site"),
):
    """
    Build the static site: listing pages with "Carregar mais posts" links and one page per post.
    """
    settings = _settings(page_size=page_size)
    try:
        result = build_site(
            make_client(settings),
            str(out),
            page_size=settings.page_size,
            max_pages=max_pages,
            max_workers=workers,
            timeout=settings.fetch_timeout,
            renderer=SiteRenderer(base_url=base_url),
        )
    except (FeedError, RenderError) as e:
        _fail(e)

    typer.echo(
        f"{len(result.listing_pages)} páginas de listagem e {len(result.posts)} posts escritos em {result.out_dir}"
    )
    if not result.ok:
        for uid, err in result.failed.items():
            typer.secho(f"  falhou {uid}: {err}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("feed")
def feed(
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1),
    load_all: bool = typer.Option(False, "--all", help="Carrega todas as páginas sem perguntar"),
):
    """
    Print the feed and offer to load more posts while there are more pages.
    """
    settings = _settings(page_size=page_size)
    client = make_client(settings)
    try:
        page = first_page(client, settings.page_size)
        with Feed(page, client.fetch_page, timeout=settings.fetch_timeout) as f:
            shown = 0
            while True:
                for post in f.state.items[shown:]:
                    _print_post(post)
                shown = len(f.state.items)
                if not f.has_more:
                    break
                if not load_all and not typer.confirm("Carregar mais posts?", default=True):
                    break
                f.load_more()
    except FeedError as e:
        _fail(e)
    typer.echo(f"{shown} posts")


@app.command("post")
def post(uid: str = typer.Argument(..., help="uid do post")):
    """
    Print one post with its reading time.
    """
    settings = _settings()
    try:
        doc = make_client(settings).get_by_uid(DOCUMENT_TYPE, uid)
    except FeedError as e:
        _fail(e)

    _print_post(doc)
    typer.echo(f"  {reading_time(doc.content)} min")
    for section in doc.content:
        typer.echo("")
        typer.secho(section.heading, bold=True)
        typer.echo(as_text(section.body, join="\n"))


@app.command("export")
def export(
    out: Path = typer.Option(..., "--out", "-o", help="Arquivo JSONL de saída"),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1),
):
    """
    Write every post summary of the feed as JSONL.
    """
    settings = _settings(page_size=page_size)
    client = make_client(settings)
    try:
        with Feed(first_page(client, settings.page_size), client.fetch_page,
                  timeout=settings.fetch_timeout) as f:
            state = f.load_all()
    except FeedError as e:
        _fail(e)

    out.parent.mkdir(parents=True, exist_ok=True)
    n = write_jsonl(str(out), (item.to_dict() for item in state.items))
    typer.echo(f"Saved {n} posts to {out}")


if __name__ == "__main__":
    app()
