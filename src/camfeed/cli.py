"""Command line interface for camfeed."""

from __future__ import annotations

import difflib
import logging
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from camfeed.config import (
    CamfeedConfig,
    ConfigError,
    ConfigManager,
    flatten_for_env,
    resolve_with_precedence,
)
from camfeed.config.resolver import assign_nested
from camfeed.media import (
    CamfeedMediaError,
    ConversionError,
    ConverterOptions,
    EncoderUnavailableError,
    FormatConverter,
    SourceNotFoundError,
    UnsupportedFormatError,
    classify,
    require_encoder,
    requires_conversion,
)

console = Console()

_ERROR_CODES: dict[type[Exception], str] = {
    SourceNotFoundError: "source_not_found",
    UnsupportedFormatError: "unsupported_format",
    ConversionError: "conversion_failed",
    EncoderUnavailableError: "encoder_unavailable",
}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _configure_logging(level: str) -> None:
    """Route library logging through Rich at the configured level."""
    root = logging.getLogger("camfeed")
    root.setLevel(level.upper())
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        root.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


def _without_timestamp(lines: list[str]) -> list[str]:
    return [line for line in lines if not line.startswith("# Last updated:")]


def _load_config(cli_overrides: dict[str, Any] | None = None) -> CamfeedConfig:
    manager = ConfigManager()
    config = manager.load(cli_overrides=cli_overrides)
    _configure_logging(config.logging.level)
    return config


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="camfeed")
def cli() -> None:
    """camfeed prepares mock camera feeds for browser-based tests.

    Returns:
        None: This function is invoked for its side effects.
    """


@cli.command("classify")
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=str))
def classify_command(paths: tuple[str, ...]) -> None:
    """Show how each PATH would be handled by the converter."""
    table = Table(title="Feed formats")
    table.add_column("Path")
    table.add_column("Class")
    table.add_column("Needs conversion")
    for path in paths:
        table.add_row(path, classify(path).value, "yes" if requires_conversion(path) else "no")
    console.print(table)


@cli.command("convert")
@click.argument("source", type=click.Path(path_type=str))
@click.option(
    "--video-dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Override the video directory.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["mjpeg", "y4m"]),
    help="Target native container.",
)
@click.option(
    "--image-mode",
    type=click.Choice(["still", "loop"]),
    help="How still images become feeds.",
)
@click.option("--ffmpeg", "ffmpeg_path", type=str, help="Encoder executable to use.")
@click.option(
    "--no-cache", is_flag=True, help="Write the feed beside the source instead of caching it."
)
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
def convert_command(
    source: str,
    video_dir: str | None,
    output_format: str | None,
    image_mode: str | None,
    ffmpeg_path: str | None,
    no_cache: bool,
    json_output: bool,
) -> None:
    """Convert SOURCE into a native camera feed and print its path.

    Raises:
        click.ClickException: If configuration is invalid or conversion fails.
    """
    overrides: dict[str, Any] = {}
    for key, value in (
        ("conversion.video_directory", video_dir),
        ("conversion.output_format", output_format),
        ("conversion.image_mode", image_mode),
        ("conversion.ffmpeg_path", ffmpeg_path),
    ):
        if value is not None:
            overrides[key] = value
    if no_cache:
        overrides["conversion.cache_enabled"] = False

    try:
        config = _load_config(overrides)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    converter = FormatConverter(ConverterOptions.from_settings(config.conversion))
    try:
        converter.initialize()
        result = converter.convert(source)
    except CamfeedMediaError as exc:
        code = _ERROR_CODES.get(type(exc), "internal_error")
        details = None
        if isinstance(exc, UnsupportedFormatError):
            details = {"extension": exc.extension, "supported": list(exc.supported)}
        _handle_cli_error(
            str(exc), code=code, json_output=json_output, details=details, original=exc
        )
        return

    if json_output:
        console.print_json(
            data={
                "source": str(Path(source).expanduser().resolve()),
                "feed": str(result),
                "format": classify(source).value,
            }
        )
        return
    console.print(f"[green]Feed ready:[/green] {result}")


@cli.command("check")
@click.option("--ffmpeg", "ffmpeg_path", type=str, help="Encoder executable to probe.")
@click.option("--json", "json_output", is_flag=True, help="Emit the probe result as JSON.")
def check_command(ffmpeg_path: str | None, json_output: bool) -> None:
    """Verify that the encoder can be executed."""
    try:
        config = _load_config()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    try:
        availability = require_encoder(ffmpeg_path or config.conversion.ffmpeg_path)
    except EncoderUnavailableError as exc:
        _handle_cli_error(
            str(exc), code=_ERROR_CODES[type(exc)], json_output=json_output, original=exc
        )
        return

    if json_output:
        console.print_json(data=availability.model_dump())
        return
    console.print(
        f"[green]Encoder available:[/green] {availability.path} "
        f"(version {availability.version or 'unknown'})"
    )


@cli.group()
def config() -> None:
    """Manage camfeed configuration files and overrides.

    Returns:
        None: This function is invoked for its side effects.
    """


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.option("--env", "as_env", is_flag=True, help="Print settings as environment variables.")
def config_view(no_env: bool, as_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    With --env, print the configuration as `CAMFEED__SECTION__KEY=value` lines
    that can be exported into a test runner's environment.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        config = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_env:
        for key, value in flatten_for_env(config).items():
            click.echo(f"{key}={value}")
        return

    yaml_text = yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = _without_timestamp(manager.read_text().splitlines())
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'conversion.output_format'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=CamfeedConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = _without_timestamp(manager.read_text().splitlines())

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )

    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point.

    Returns:
        None: This function is invoked for its side effects.
    """
    cli()


if __name__ == "__main__":
    main()
