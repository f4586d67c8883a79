"""CLI entry point for slingshot."""

import json
import logging
import threading
from pathlib import Path

import click

from slingshot.config import load_transport_config
from slingshot.curl import generate_curl
from slingshot.dispatch.classify import Failed
from slingshot.dispatch.dispatcher import RequestDispatcher
from slingshot.export.postman import export_collection
from slingshot.parser.base import ImportResult
from slingshot.parser.curl import parse_curl
from slingshot.parser.detect import default_name, detect_format, import_document
from slingshot.parser.errors import CurlParseError, SpecImportError
from slingshot.parser.fetch import FetchError, fetch_document
from slingshot.resolver import resolve_fields
from slingshot.store.importer import persist_import
from slingshot.store.memory import InMemoryStore
from slingshot.store.models import TRACKED_FIELDS, RequestFields


def _parse_vars(pairs: tuple[str, ...]) -> dict[str, str]:
    variables = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--var")
        key, value = pair.split("=", 1)
        variables[key.strip()] = value
    return variables


def _load_request(path: Path, pairs: tuple[str, ...]) -> RequestFields:
    fields = RequestFields.model_validate_json(path.read_text(encoding="utf-8"))
    return resolve_fields(fields, _parse_vars(pairs))


def _write_result(result: ImportResult, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.model_dump_json(indent=2), encoding="utf-8")
    click.echo(f"Collection {result.collection_name!r}: {len(result.folders)} folders, {len(result.requests)} requests.")
    click.echo(f"Saved to {output}")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """Slingshot: import API documents and send requests through the proxy."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@main.command("import")
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the import result JSON.")
@click.option("--name", default=None, help="Collection name override.")
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", "openapi", "postman"]), help="Document format.")
def import_cmd(doc_path: Path, output: Path, name: str | None, fmt: str):
    """Import an OpenAPI/Swagger document or a Postman collection."""
    text = doc_path.read_text(encoding="utf-8")
    if fmt == "auto":
        fmt = detect_format(text)
    click.echo(f"Parsing {doc_path} (format: {fmt})...")
    try:
        result = import_document(text, name=name, fmt=fmt)
    except SpecImportError as e:
        raise click.ClickException(str(e)) from e
    _write_result(result, output)


@main.command()
@click.argument("url")
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the import result JSON.")
@click.option("--name", default=None, help="Collection name override.")
def fetch(url: str, output: Path, name: str | None):
    """Download a document from URL and import it."""
    click.echo(f"Fetching {url}...")
    try:
        text = fetch_document(url)
        fmt = detect_format(text)
        result = import_document(text, name=name or default_name(text, fmt, url), fmt=fmt)
    except (FetchError, SpecImportError) as e:
        raise click.ClickException(str(e)) from e
    _write_result(result, output)


@main.command()
@click.argument("request_path", type=click.Path(exists=True, path_type=Path))
@click.option("--var", "pairs", multiple=True, help="Variable as KEY=VALUE (repeatable).")
@click.option("--proxy", default=None, help="Transport proxy URL.")
@click.option("--timeout", default=None, type=click.IntRange(1, 300), help="Request timeout in seconds.")
@click.option("--no-follow-redirects", is_flag=True, help="Do not follow redirects.")
def send(request_path: Path, pairs: tuple[str, ...], proxy: str | None, timeout: int | None, no_follow_redirects: bool):
    """Send a request (JSON file) through the transport proxy."""
    fields = _load_request(request_path, pairs)
    config = load_transport_config()
    if proxy:
        config.proxy_url = proxy
    dispatcher = RequestDispatcher(config)

    result = {}

    def _send():
        result["outcome"] = dispatcher.send(
            fields, timeout=timeout, follow_redirects=False if no_follow_redirects else None
        )

    worker = threading.Thread(target=_send, daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.1)
    except KeyboardInterrupt:
        dispatcher.cancel()
        worker.join()

    outcome = result["outcome"]
    click.echo(outcome.model_dump_json(indent=2))
    if isinstance(outcome, Failed):
        raise SystemExit(1)


@main.command()
@click.argument("request_path", type=click.Path(exists=True, path_type=Path))
@click.option("--var", "pairs", multiple=True, help="Variable as KEY=VALUE (repeatable).")
@click.option("--timeout", default=30, type=click.IntRange(1, 300), help="Request timeout in seconds.")
@click.option("--no-follow-redirects", is_flag=True, help="Do not follow redirects.")
def curl(request_path: Path, pairs: tuple[str, ...], timeout: int, no_follow_redirects: bool):
    """Print a curl command for a request (JSON file)."""
    fields = _load_request(request_path, pairs)
    click.echo(generate_curl(fields, follow_redirects=not no_follow_redirects, timeout=timeout))


@main.command("import-curl")
@click.argument("command")
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the request JSON.")
def import_curl(command: str, output: Path):
    """Turn a curl command line into a request (JSON file)."""
    try:
        request = parse_curl(command)
    except CurlParseError as e:
        raise click.ClickException(str(e)) from e
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(request.model_dump_json(include=set(TRACKED_FIELDS), indent=2), encoding="utf-8")
    click.echo(f"Request {request.name!r} saved to {output}")


@main.command("export")
@click.argument("result_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the Postman collection.")
def export_cmd(result_path: Path, output: Path):
    """Convert an import result (JSON file) into a Postman v2.1 collection."""
    result = ImportResult.model_validate_json(result_path.read_text(encoding="utf-8"))
    store = InMemoryStore()
    collection = persist_import(store, result)
    bundle = export_collection(store, collection.id)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(bundle, indent=2), encoding="utf-8")
    click.echo(f"Exported {collection.name!r} to {output}")
