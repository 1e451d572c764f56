"""CLI package for token metadata commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Callable, NoReturn

import typer
from rich.markup import escape

from token_metadata_cli import __version__
from token_metadata_cli.core import (
    CliConfig,
    CommandDispatcher,
    CreateRequest,
    SubmissionResult,
    UpdateRequest,
    load_config,
)
from token_metadata_cli.errors import InvalidArgument, RpcSubmissionError, TokenMetadataError
from token_metadata_cli.solana.metadata import MetadataUpdate

from .branding import themed_console

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Create or update token metadata on Solana using the Metaplex Token Metadata program",
    no_args_is_help=True,
)

CLI_CONSOLE = themed_console(soft_wrap=True, emoji=False)
ERR_CONSOLE = themed_console(stderr=True, soft_wrap=True, emoji=False)

_TRUE_VALUES = {"true", "t", "yes", "y", "1"}
_FALSE_VALUES = {"false", "f", "no", "n", "0"}


def styled_echo(message: str = "", *, nl: bool = True) -> None:
    """Print using the themed console."""
    CLI_CONSOLE.print(message, end="" if not nl else "\n")


@dataclass
class GlobalOptions:
    keypair: str | None
    url: str | None
    config_file: Path | None
    verbose: bool


def _configure_logging(verbose: bool) -> None:
    root_logger = logging.getLogger()
    if verbose:
        if not root_logger.handlers:
            logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        root_logger.setLevel(logging.DEBUG)
    else:
        if root_logger.handlers:
            root_logger.setLevel(logging.WARNING)
        else:
            logging.basicConfig(level=logging.WARNING, format="%(message)s")


def _parse_bool(value: str, option: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise typer.BadParameter(f"expected true or false, got '{value}'", param_hint=option)


def _make_dispatcher(config: CliConfig) -> CommandDispatcher:
    return CommandDispatcher(config)


def _fail(exc: TokenMetadataError) -> NoReturn:
    ERR_CONSOLE.print(f"[tm.error]❌ {type(exc).__name__}[/]: {escape(str(exc))}")
    if isinstance(exc, RpcSubmissionError):
        for line in exc.logs:
            logger.debug("program log: %s", line)
    raise typer.Exit(code=2 if isinstance(exc, InvalidArgument) else 1)


def _execute(
    ctx: typer.Context,
    check: Callable[[CommandDispatcher], object],
    action: Callable[[CommandDispatcher], SubmissionResult],
) -> tuple[CliConfig, SubmissionResult]:
    options: GlobalOptions = ctx.obj
    try:
        config = load_config(config_file=options.config_file, keypair=options.keypair, url=options.url)
        dispatcher = _make_dispatcher(config)
        # argument errors win over keypair errors
        check(dispatcher)
        styled_echo(f"[tm.label]Using RPC:[/]    {escape(config.rpc_url)}")
        styled_echo(f"[tm.label]Using wallet:[/] {dispatcher.signer.pubkey()}\n")
        with CLI_CONSOLE.status("Submitting transaction…", spinner="dots"):
            result = action(dispatcher)
    except TokenMetadataError as exc:
        _fail(exc)
    return config, result


def _field(label: str, value: object) -> None:
    styled_echo(f"  [tm.label]{label + ':':<14}[/]{escape(str(value))}")


def _print_signature(config: CliConfig, result: SubmissionResult) -> None:
    _field("Signature", result.signature)
    styled_echo(f"  [tm.label]{'Explorer:':<14}[/][tm.link]{escape(config.explorer_url(result.signature))}[/]")


@app.callback()
def cli(
    ctx: typer.Context,
    keypair: str | None = typer.Option(  # noqa: B008
        None, "--keypair", "-k", help="Path to the payer/authority keypair file [default: ~/.config/solana/id.json]"
    ),
    url: str | None = typer.Option(  # noqa: B008
        None, "--url", "-u", help="Solana RPC URL [default: https://api.devnet.solana.com]"
    ),
    config: Path | None = typer.Option(None, "--config", help="TOML file with keypair/url/commitment/timeout"),  # noqa: B008
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),  # noqa: B008
) -> None:
    """Create or update token metadata on Solana."""
    _configure_logging(verbose)
    ctx.obj = GlobalOptions(keypair=keypair, url=url, config_file=config, verbose=verbose)


@app.command()
def create(
    ctx: typer.Context,
    mint: str = typer.Option(..., "--mint", "-m", help="Token mint address"),  # noqa: B008
    name: str = typer.Option(..., "--name", "-n", help="Token name"),  # noqa: B008
    symbol: str = typer.Option(..., "--symbol", "-s", help="Token symbol"),  # noqa: B008
    uri: str = typer.Option("", "--uri", help="Metadata URI (JSON file URL)"),  # noqa: B008
    seller_fee_basis_points: int = typer.Option(  # noqa: B008
        0, "--seller-fee-basis-points", help="Seller fee basis points (0-10000)"
    ),
    mutable: str = typer.Option("true", "--mutable", help="Whether metadata should be mutable (true|false)"),  # noqa: B008
) -> None:
    """Create metadata for an existing token mint."""
    request = CreateRequest(
        mint=mint,
        name=name,
        symbol=symbol,
        uri=uri,
        seller_fee_basis_points=seller_fee_basis_points,
        is_mutable=_parse_bool(mutable, "--mutable"),
    )
    config, result = _execute(
        ctx,
        lambda dispatcher: dispatcher.check_create(request),
        lambda dispatcher: dispatcher.create(request),
    )
    data = result.data

    styled_echo("[tm.success]Metadata created successfully![/]")
    _field("Mint", result.mint)
    _field("Metadata PDA", result.metadata_address)
    _field("Name", data.name)
    _field("Symbol", data.symbol)
    _field("URI", data.uri or "(empty)")
    _field("Royalty (bps)", data.seller_fee_basis_points)
    _field("Mutable", str(result.is_mutable).lower())
    _print_signature(config, result)


@app.command()
def update(
    ctx: typer.Context,
    mint: str = typer.Option(..., "--mint", "-m", help="Token mint address"),  # noqa: B008
    name: str | None = typer.Option(None, "--name", "-n", help="New token name"),  # noqa: B008
    symbol: str | None = typer.Option(None, "--symbol", "-s", help="New token symbol"),  # noqa: B008
    uri: str | None = typer.Option(None, "--uri", help="New metadata URI"),  # noqa: B008
    seller_fee_basis_points: int | None = typer.Option(  # noqa: B008
        None, "--seller-fee-basis-points", help="New seller fee basis points (0-10000)"
    ),
    mutable: str | None = typer.Option(None, "--mutable", help="Set mutability (true|false)"),  # noqa: B008
) -> None:
    """Update metadata for an existing token mint; omitted fields keep their value."""
    changes = MetadataUpdate.from_options(
        name=name,
        symbol=symbol,
        uri=uri,
        seller_fee_basis_points=seller_fee_basis_points,
        is_mutable=None if mutable is None else _parse_bool(mutable, "--mutable"),
    )
    request = UpdateRequest(mint=mint, changes=changes)
    config, result = _execute(
        ctx,
        lambda dispatcher: dispatcher.check_update(request),
        lambda dispatcher: dispatcher.update(request),
    )

    styled_echo("[tm.success]Metadata updated successfully![/]")
    _field("Mint", result.mint)
    _field("Metadata PDA", result.metadata_address)
    previous, current = result.previous, result.data
    if previous is not None and current is not None:
        _field("Name", f"{previous.name} -> {current.name}")
        _field("Symbol", f"{previous.symbol} -> {current.symbol}")
        _field("URI", f"{previous.uri or '(empty)'} -> {current.uri or '(empty)'}")
        _field("Royalty (bps)", f"{previous.seller_fee_basis_points} -> {current.seller_fee_basis_points}")
    if result.is_mutable is not None:
        _field("Mutable", str(result.is_mutable).lower())
    _print_signature(config, result)


@app.command()
def version() -> None:
    """Show CLI version."""
    try:
        pkg_version = metadata.version("token-metadata-cli")
    except metadata.PackageNotFoundError:
        pkg_version = __version__
    styled_echo(f"token-metadata-cli version {pkg_version}")


def main() -> None:
    """Console script entrypoint."""
    app()


__all__ = ["app", "main"]
