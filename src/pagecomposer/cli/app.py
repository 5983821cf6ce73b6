"""Command line interface for Pagecomposer."""

from __future__ import annotations

import asyncio
import json
import logging
import pathlib
from typing import Any, Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from pagecomposer import get_version
from pagecomposer.assembly import (
    AssemblyEngine,
    AssemblyOptions,
    InvalidSectionsError,
    parse_sections,
    serialize_blocks,
)
from pagecomposer.blocks import AUTO, BlockPreference, BlockResolver, FallbackAdvisor, default_preference
from pagecomposer.catalog import CatalogSnapshot
from pagecomposer.config import Config, load_config
from pagecomposer.discovery import DiscoveryError, build_discovery
from pagecomposer.logging import configure_logging, set_run_id
from pagecomposer.reports import new_run_id, render_preview, write_run_record, write_status_report


def _load_environment(env_file: Optional[pathlib.Path]) -> None:
    """Load environment variables from .env files."""

    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=True)
    else:
        load_dotenv(override=False)


def _prepare_logging(
    config: Config,
    override_path: Optional[pathlib.Path],
    override_level: Optional[str],
) -> tuple[logging.Logger, pathlib.Path]:
    """Configure logging based on configuration and overrides."""

    configured_path = override_path or config.logging.path
    configured_level = (override_level or config.logging.level).upper()
    logger = configure_logging(
        log_path=configured_path,
        level=configured_level,
        mirror_to_console=False,
    )
    file_handler = next((h for h in logger.handlers if hasattr(h, "baseFilename")), None)
    if file_handler is not None:
        return logger, pathlib.Path(file_handler.baseFilename)
    fallback_path = (
        pathlib.Path(configured_path) if configured_path else pathlib.Path.cwd() / "pagecomposer.log"
    )
    return logger, fallback_path


def _snapshot(ctx: typer.Context) -> CatalogSnapshot:
    """Discover (or reuse) the catalog snapshot for this invocation."""

    cached = ctx.obj.get("snapshot")
    if cached is not None:
        return cached
    config: Config = ctx.obj["config"]
    try:
        discovery = build_discovery(config.discovery, config.preferences.plugin_priorities)
        snapshot = discovery.snapshot()
    except DiscoveryError as exc:
        typer.echo(f"Discovery failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    ctx.obj["snapshot"] = snapshot
    return snapshot


def _parse_attributes(pairs: list[str]) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}.", param_hint="--attr")
        try:
            attributes[key] = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError:
            attributes[key] = raw
    return attributes


def _read_sections_payload(path: pathlib.Path) -> Any:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {path}: {exc}", param_hint="SECTIONS_FILE") from exc
    try:
        data = json.loads(content) if path.suffix.lower() == ".json" else yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Cannot parse {path}: {exc}", param_hint="SECTIONS_FILE") from exc
    if isinstance(data, dict) and "sections" in data:
        return data["sections"]
    return data


def _assembly_options(config: Config) -> AssemblyOptions:
    settings = config.assembly
    return AssemblyOptions(
        optimize_images=settings.optimize_images,
        validate_html=settings.validate_html,
        include_recommendations=settings.include_recommendations,
        max_internal_links=settings.max_internal_links,
        max_text_length=settings.max_text_length,
        site_url=settings.site_url,
        section_mappings=dict(config.preferences.section_mappings),
    )


app = typer.Typer(
    name="pagecomposer",
    help="Resolve page sections into plugin-aware WordPress blocks.",
    no_args_is_help=True,
    add_completion=False,
)

config_app = typer.Typer(help="Configuration utilities.", no_args_is_help=True)
app.add_typer(config_app, name="config")


def _version_callback(value: bool) -> None:
    """Print the package version and exit when requested."""

    if value:
        typer.echo(get_version())
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[pathlib.Path] = typer.Option(
        None,
        "--config",
        metavar="PATH",
        help="Path to YAML configuration file (used exclusively).",
    ),
    env_file: Optional[pathlib.Path] = typer.Option(
        None,
        "--env-file",
        metavar="PATH",
        help="Load environment variables from .env-style file before execution.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        metavar="LEVEL",
        help="Override the configured log level (debug, info, warn, error).",
    ),
    log_path: Optional[pathlib.Path] = typer.Option(
        None,
        "--log-path",
        metavar="PATH",
        help="Override the base directory or file for log output.",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show Pagecomposer version and exit.",
    ),
) -> None:
    """CLI root; loads configuration, logging, and shared context."""

    ctx.ensure_object(dict)
    _load_environment(env_file)

    try:
        config_obj = load_config(config)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc

    logger, log_file = _prepare_logging(config_obj, log_path, log_level)
    ctx.obj.update(
        {
            "config": config_obj,
            "config_path": config,
            "log_file": log_file,
            "logger": logger,
        }
    )


@app.command()
def catalog(ctx: typer.Context) -> None:
    """List discovered plugins and how many blocks each registers."""

    snapshot = _snapshot(ctx)
    table = Table(title="Block plugins")
    table.add_column("Plugin")
    table.add_column("Key")
    table.add_column("Active")
    table.add_column("Priority", justify="right")
    table.add_column("Namespace")
    table.add_column("Blocks", justify="right")
    for plugin in snapshot.registry:
        table.add_row(
            plugin.name,
            plugin.key,
            "yes" if plugin.active else "no",
            str(plugin.priority),
            plugin.namespace,
            str(len(snapshot.blocks_for(plugin.key))),
        )
    Console().print(table)
    if snapshot.inconsistencies:
        typer.echo(f"{len(snapshot.inconsistencies)} block(s) with unknown namespaces.", err=True)


@app.command()
def resolve(
    ctx: typer.Context,
    content_type: str = typer.Argument(..., help="Section content type, e.g. hero or faq."),
    prefer: str = typer.Option(AUTO, "--prefer", metavar="KEY", help="Preferred plugin key."),
    fallback: Optional[list[str]] = typer.Option(
        None,
        "--fallback",
        metavar="BLOCK",
        help="Ordered fallback block names (repeatable).",
    ),
    attr: Optional[list[str]] = typer.Option(
        None,
        "--attr",
        metavar="KEY=VALUE",
        help="Custom attribute overriding block defaults (repeatable).",
    ),
) -> None:
    """Resolve one content type to a concrete block and print it as JSON."""

    preference = default_preference(content_type, prefer)
    if fallback:
        preference.fallback_blocks = list(fallback)
    preference.custom_attributes = _parse_attributes(attr or [])

    resolved = BlockResolver(_snapshot(ctx)).resolve(content_type, preference)
    typer.echo(json.dumps(resolved.to_dict(), indent=2))


@app.command()
def recommend(
    ctx: typer.Context,
    content_type: str = typer.Argument(..., help="Section content type."),
    feature: Optional[list[str]] = typer.Option(
        None,
        "--feature",
        metavar="NAME",
        help="Required feature, e.g. background_image (repeatable).",
    ),
) -> None:
    """Print the advisor's fallback recommendation as JSON."""

    snapshot = _snapshot(ctx)
    recommendation = FallbackAdvisor(snapshot).recommend(
        content_type, snapshot, required_features=feature or ()
    )
    typer.echo(json.dumps(recommendation.to_dict(), indent=2))


@app.command()
def assemble(
    ctx: typer.Context,
    sections_file: pathlib.Path = typer.Argument(
        ..., metavar="SECTIONS_FILE", help="JSON or YAML list of sections."
    ),
    output: Optional[pathlib.Path] = typer.Option(
        None, "--output", metavar="PATH", help="Write the assembly result JSON here."
    ),
    markup: Optional[pathlib.Path] = typer.Option(
        None, "--markup", metavar="PATH", help="Write Gutenberg block markup here."
    ),
    preview: Optional[pathlib.Path] = typer.Option(
        None, "--preview", metavar="PATH", help="Write an annotated HTML preview here."
    ),
    label: Optional[str] = typer.Option(
        None, "--label", metavar="TEXT", help="Label stored with the run record."
    ),
) -> None:
    """Assemble sections into blocks and record the run."""

    config: Config = ctx.obj["config"]
    logger: logging.Logger = ctx.obj["logger"]

    try:
        sections = parse_sections(_read_sections_payload(sections_file))
    except InvalidSectionsError as exc:
        typer.echo(f"Invalid sections: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    run_id = new_run_id()
    set_run_id(run_id)
    try:
        engine = AssemblyEngine(_snapshot(ctx), logger=logger)
        options = _assembly_options(config)
        if config.assembly.parallel:
            result = asyncio.run(engine.assemble_async(sections, options))
        else:
            result = engine.assemble(sections, options)
    finally:
        set_run_id(None)

    payload = json.dumps(result.to_dict(), indent=2)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload, encoding="utf-8")
        typer.echo(f"Wrote {output}", err=True)
    else:
        typer.echo(payload)

    if markup is not None:
        markup.parent.mkdir(parents=True, exist_ok=True)
        markup.write_text(serialize_blocks(result.blocks) + "\n", encoding="utf-8")
        typer.echo(f"Wrote {markup}", err=True)
    if preview is not None:
        preview.parent.mkdir(parents=True, exist_ok=True)
        preview.write_text(render_preview(result), encoding="utf-8")
        typer.echo(f"Wrote {preview}", err=True)

    record_path = write_run_record(result, sections, config.runs_dir, run_id=run_id, label=label)
    write_status_report(config.runs_dir, config.report_path)

    metadata = result.metadata
    typer.echo(
        f"{len(result.blocks)} block(s), {metadata.fallbacks_applied} fallback(s), "
        f"accessibility {metadata.accessibility_score}/100; run record {record_path}",
        err=True,
    )
    for warning in metadata.validation_warnings:
        typer.echo(f"warning: {warning}", err=True)


@app.command()
def report(ctx: typer.Context) -> None:
    """Regenerate the Markdown status report from recorded runs."""

    config: Config = ctx.obj["config"]
    write_status_report(config.runs_dir, config.report_path)
    typer.echo(f"Wrote {config.report_path}")


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    format: str = typer.Option(
        "yaml",
        "--format",
        help="Output format (yaml or json).",
    ),
    paths: bool = typer.Option(
        False,
        "--paths",
        help="Explain configuration precedence and selected inputs.",
    ),
) -> None:
    """Show the effective configuration for this invocation."""

    config: Config = ctx.obj["config"]
    config_path: Optional[pathlib.Path] = ctx.obj.get("config_path")

    normalized_format = format.strip().lower()
    if normalized_format not in {"yaml", "json"}:
        raise typer.BadParameter("Format must be 'yaml' or 'json'.", param_hint="--format")

    if paths:
        if config.loaded_from:
            typer.echo("Loaded configuration from:", err=True)
            for entry in config.loaded_from:
                typer.echo(f"- {entry}", err=True)
        if config_path is not None:
            typer.echo("Mode: replace-by-default", err=True)
        else:
            typer.echo("Config precedence (when --config is not provided):", err=True)
            typer.echo("1) ./config/default.yaml (or packaged default if missing)", err=True)
            typer.echo("2) ./config/local.yaml (optional)", err=True)

    data = config.model.model_dump(mode="json")
    data["discovery"].pop("application_password", None)
    if normalized_format == "json":
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(yaml.safe_dump(data, sort_keys=False))


@app.command()
def version() -> None:
    """Print the Pagecomposer version."""

    typer.echo(get_version())
