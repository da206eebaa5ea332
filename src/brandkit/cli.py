from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import typer

from .workflows.assets import ExtractedAssetSet
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.extractor import extract_assets
from .workflows.html_sanitize import SanitizeMode, sanitize
from .workflows.page_fetch import PageFetcher
from .workflows.rate_limiter import InMemoryStore, RateLimiter, build_redis_store
from .workflows.service import ExtractionService

app = typer.Typer(add_help_option=False, no_args_is_help=False)

EXIT_INPUT_ERROR = 2
EXIT_FATAL = 3
EXIT_RATE_LIMITED = 4


def _minimal_help() -> str:
    return """brandkit (brand asset extraction)

Usage:
  brandkit extract <url> [--json] [--identity <ID>]
  brandkit extract-file <path|-> --base-url <URL> [--json]
  brandkit sanitize <path|-> [--mode strict|extraction]
  brandkit doctor

Discoverability:
  --help-full     Expanded help + env vars.
  --find <query>  Search commands, flags, env vars.
  --doctor        Run environment diagnostics and exit.
"""


def _help_full() -> str:
    return """brandkit CLI

Commands:
  extract        Fetch a page and list its logos, colors, fonts and illustrations.
  extract-file   Extract from saved markup, resolving URLs against --base-url.
  sanitize       Print markup with executable content removed.
  doctor         Print environment and dependency diagnostics.

Exit codes:
  0  success
  2  bad input (unreadable file, unknown mode)
  3  fetch or extraction failure
  4  rate limited

Env vars:
  BRANDKIT_LOG_LEVEL             Logging level (default WARNING).
  BRANDKIT_REDIS_URL             Shared rate-limit store (in-memory when unset).
  BRANDKIT_REDIS_TIMEOUT         Redis socket timeout in seconds.
  BRANDKIT_RATE_LIMIT_MAX        Requests allowed per window (default 100).
  BRANDKIT_RATE_LIMIT_WINDOW_MS  Window size in milliseconds (default 3600000).
  BRANDKIT_MAX_STYLESHEETS       Same-origin stylesheets scanned per page (default 2).
  BRANDKIT_FETCH_TIMEOUT         HTTP timeout in seconds (default 15).
  BRANDKIT_USER_AGENT            User-Agent header for fetches.
"""


_FIND_INDEX = [
    ("command", "extract", "Fetch a page and extract brand assets."),
    ("command", "extract-file", "Extract brand assets from saved markup."),
    ("command", "sanitize", "Strip scripts and event handlers from markup."),
    ("command", "doctor", "Print environment and dependency diagnostics."),
    ("flag", "--json", "Print the result as JSON."),
    ("flag", "--identity", "Client identity used for rate limiting."),
    ("flag", "--base-url", "Base URL for resolving relative asset URLs."),
    ("flag", "--mode", "Sanitize mode: strict or extraction."),
    ("flag", "--help-full", "Expanded help and env vars."),
    ("flag", "--find", "Search commands, flags, env vars."),
    ("flag", "--doctor", "Run environment diagnostics and exit."),
    ("env", "BRANDKIT_LOG_LEVEL", "Logging level."),
    ("env", "BRANDKIT_REDIS_URL", "Shared rate-limit store."),
    ("env", "BRANDKIT_RATE_LIMIT_MAX", "Requests allowed per window."),
    ("env", "BRANDKIT_RATE_LIMIT_WINDOW_MS", "Rate-limit window size."),
    ("env", "BRANDKIT_MAX_STYLESHEETS", "Linked stylesheets scanned per page."),
    ("env", "BRANDKIT_FETCH_TIMEOUT", "HTTP timeout."),
    ("env", "BRANDKIT_USER_AGENT", "User-Agent header."),
]


def _run_find(query: str) -> str:
    needle = (query or "").strip().lower()
    if not needle:
        return ""
    lines = []
    for category, name, desc in _FIND_INDEX:
        haystack = f"{category} {name} {desc}".lower()
        if needle in haystack:
            lines.append(f"{category} {name} - {desc}")
    return "\n".join(lines)


def _configure_logging() -> None:
    level = (os.getenv("BRANDKIT_LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")


def _read_input(path_or_dash: str) -> str:
    if path_or_dash == "-":
        return sys.stdin.read()
    path = Path(path_or_dash)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    return path.read_text(encoding="utf-8", errors="replace")


def build_service() -> ExtractionService:
    store = build_redis_store() or InMemoryStore()
    return ExtractionService(PageFetcher(), RateLimiter(store))


def format_assets(assets: ExtractedAssetSet) -> str:
    lines = []
    sections = (
        ("Logos", assets.logos, lambda a: a.url + (f"  ({a.alt})" if a.alt else "")),
        ("Colors", assets.colors, lambda a: a.value),
        ("Fonts", assets.fonts, lambda a: a.name + (f"  <{a.url}>" if a.url else "")),
        ("Illustrations", assets.illustrations, lambda a: a.url + (f"  ({a.alt})" if a.alt else "")),
    )
    for title, items, render in sections:
        lines.append(f"{title} ({len(items)}):")
        for item in items:
            lines.append(f"  - {render(item)} [{item.source_kind.value}]")
    return "\n".join(lines) + "\n"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    help: bool = typer.Option(False, "--help", "-h", is_eager=True, help="Show minimal help."),
    help_full: bool = typer.Option(False, "--help-full", is_eager=True, help="Show expanded help."),
    find: Optional[str] = typer.Option(None, "--find", is_eager=True, help="Search commands, flags, env vars."),
    doctor: bool = typer.Option(False, "--doctor", is_eager=True, help="Run environment diagnostics and exit."),
) -> None:
    _configure_logging()
    if help_full:
        typer.echo(_help_full())
        raise typer.Exit(code=0)
    if find is not None:
        output = _run_find(find)
        if output:
            typer.echo(output)
        raise typer.Exit(code=0)
    if doctor:
        report = build_doctor_report()
        typer.echo(format_doctor_report(report))
        raise typer.Exit(code=0 if report.get("ok", True) else 2)
    if help or ctx.invoked_subcommand is None:
        typer.echo(_minimal_help())
        raise typer.Exit(code=0)


@app.command("doctor", add_help_option=True)
def doctor_cmd() -> None:
    """Print environment and dependency diagnostics."""
    report = build_doctor_report()
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


@app.command("extract", add_help_option=True)
def extract_cmd(
    url: str = typer.Argument(..., help="Page URL to fetch."),
    json_out: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    identity: str = typer.Option("local", "--identity", help="Client identity used for rate limiting."),
) -> None:
    """Fetch a page and list its brand assets."""
    try:
        outcome = build_service().extract_url(url, identity=identity)
    except Exception as exc:
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=EXIT_FATAL)
    if json_out:
        sys.stdout.write(json.dumps(outcome.to_dict(), ensure_ascii=False) + "\n")
    elif outcome.assets is not None:
        typer.echo(format_assets(outcome.assets), nl=False)
    if outcome.success:
        raise typer.Exit(code=0)
    if not json_out:
        typer.echo(f"error: {outcome.error}", err=True)
    if outcome.rate_limit is not None and outcome.rate_limit.limited:
        raise typer.Exit(code=EXIT_RATE_LIMITED)
    raise typer.Exit(code=EXIT_FATAL)


@app.command("extract-file", add_help_option=True)
def extract_file_cmd(
    path_or_dash: str = typer.Argument(..., help="Path to saved markup or '-' for stdin."),
    base_url: str = typer.Option(..., "--base-url", help="Base URL for resolving relative asset URLs."),
    json_out: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Extract brand assets from saved markup."""
    try:
        markup = _read_input(path_or_dash)
    except Exception as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)
    assets = extract_assets(markup, base_url)
    if json_out:
        sys.stdout.write(json.dumps(assets.to_dict(), ensure_ascii=False) + "\n")
    else:
        typer.echo(format_assets(assets), nl=False)


@app.command("sanitize", add_help_option=True)
def sanitize_cmd(
    path_or_dash: str = typer.Argument(..., help="Path to markup or '-' for stdin."),
    mode: str = typer.Option("strict", "--mode", help="Sanitize mode: strict or extraction."),
) -> None:
    """Print markup with executable content removed."""
    try:
        resolved = SanitizeMode.parse(mode)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--mode")
    try:
        markup = _read_input(path_or_dash)
    except Exception as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)
    sys.stdout.write(sanitize(markup, resolved))
