"""ofuda CLI - Build, sign and check HMAC Authorization headers."""

import sys
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ofuda.canonical import CanonicalStringBuilder, build_canonical_string_with_path
from ofuda.common.errors import ConfigurationError
from ofuda.common.logging import setup_logging
from ofuda.common.settings import get_settings
from ofuda.config import Credentials, SigningConfig
from ofuda.http import HttpRequest
from ofuda.signer import Signer
from ofuda.verifier import Verifier

console = Console()


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected 'Name: value', got {raw!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


def _build_request(method: str, path: str, header: tuple[str, ...]) -> HttpRequest:
    return HttpRequest(method=method.upper(), path=path, headers=_parse_headers(header))


def _builder(ctx: click.Context, sign_path: bool) -> CanonicalStringBuilder | None:
    if not sign_path:
        return None
    config: SigningConfig = ctx.obj["config"]
    return build_canonical_string_with_path(config.header_prefix)


def request_options(f: Any) -> Any:
    """Options describing the request to canonicalize."""
    f = click.option("--sign-path", is_flag=True, help="Include the path in the signed string")(f)
    f = click.option(
        "--header",
        "-H",
        multiple=True,
        help="Request header as 'Name: value' (repeatable)",
    )(f)
    f = click.option("--path", default="/", show_default=True, help="Request path")(f)
    f = click.option("--method", "-X", default="GET", show_default=True, help="HTTP method")(f)
    return f


@click.group()
@click.option("--header-prefix", default=None, help="Substring selecting extra signed headers")
@click.option("--service-label", default=None, help="Label used in the Authorization header")
@click.option("--hash", "hash_algorithm", default=None, help="HMAC digest name (default sha1)")
@click.option("--debug/--no-debug", default=None, help="Log signing diagnostics")
@click.pass_context
def cli(
    ctx: click.Context,
    header_prefix: str | None,
    service_label: str | None,
    hash_algorithm: str | None,
    debug: bool | None,
) -> None:
    """ofuda CLI - HMAC request signing."""
    settings = get_settings()
    debug = settings.debug if debug is None else debug
    ctx.ensure_object(dict)
    if ctx.obj.get("configure_logging"):
        setup_logging("DEBUG" if debug else settings.log_level, json_logs=settings.log_json)

    try:
        config = SigningConfig(
            header_prefix=header_prefix if header_prefix is not None else settings.header_prefix,
            service_label=service_label or settings.service_label,
            hash_algorithm=hash_algorithm or settings.hash_algorithm,
            debug=debug,
        )
    except ConfigurationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)

    ctx.obj["config"] = config


@cli.command("canonical")
@request_options
@click.pass_context
def canonical_cmd(
    ctx: click.Context,
    method: str,
    path: str,
    header: tuple[str, ...],
    sign_path: bool,
) -> None:
    """Print the canonical string for a request."""
    request = _build_request(method, path, header)
    builder = _builder(ctx, sign_path)
    signer = Signer(ctx.obj["config"])

    canonical = builder(request) if builder else signer.canonical_string(request)
    click.echo(canonical)


@cli.command("sign")
@click.option("--key-id", required=True, help="Access key id")
@click.option(
    "--secret",
    required=True,
    envvar="OFUDA_ACCESS_KEY_SECRET",
    help="Access key secret (or OFUDA_ACCESS_KEY_SECRET)",
)
@request_options
@click.pass_context
def sign_cmd(
    ctx: click.Context,
    key_id: str,
    secret: str,
    method: str,
    path: str,
    header: tuple[str, ...],
    sign_path: bool,
) -> None:
    """Print the Authorization header for a request."""
    request = _build_request(method, path, header)
    signer = Signer(ctx.obj["config"])
    signer.sign_request(Credentials(key_id, secret), request, _builder(ctx, sign_path))

    click.echo(f"Authorization: {request.headers['Authorization']}")


@cli.command("verify")
@click.option("--key-id", required=True, help="Access key id expected in the header")
@click.option(
    "--secret",
    required=True,
    envvar="OFUDA_ACCESS_KEY_SECRET",
    help="Access key secret (or OFUDA_ACCESS_KEY_SECRET)",
)
@request_options
@click.pass_context
def verify_cmd(
    ctx: click.Context,
    key_id: str,
    secret: str,
    method: str,
    path: str,
    header: tuple[str, ...],
    sign_path: bool,
) -> None:
    """Verify a request's Authorization header."""
    request = _build_request(method, path, header)
    verifier = Verifier(ctx.obj["config"], _builder(ctx, sign_path))
    credentials = Credentials(key_id, secret)

    result = verifier.verify_result(
        request,
        lambda access_key_id: credentials if access_key_id == key_id else None,
    )

    table = Table(title="Request")
    table.add_column("Header", style="cyan")
    table.add_column("Value")
    for name, value in request.headers.items():
        table.add_row(name, value)
    console.print(table)

    if result:
        console.print(f"[green]✓ Signature is valid for {result.access_key_id}[/green]")
    else:
        console.print("[red]✗ Signature is invalid[/red]")
        sys.exit(1)


def main() -> None:
    """CLI entry point."""
    cli(obj={"configure_logging": True})


if __name__ == "__main__":
    main()
