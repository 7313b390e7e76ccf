"""Invoke tasks for building, testing, and linting camfeed.

Every task shells out to the `uv` CLI so local runs match CI.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCE_PATHS = ("src", "tests")


def _run_uv(ctx: Context, args: Sequence[str], *, dry_run: bool = False) -> None:
    """Execute a uv command with consistent quoting.

    Args:
        ctx: Invoke execution context.
        args: Arguments appended after the `uv` executable.
        dry_run: When True, print the command without executing it.
    """
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    ctx.run(command, echo=True, pty=True)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment, including dev extras by default."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _run_uv(ctx, args)


@task(help={"clean": "Remove existing artifacts from dist/ before building."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build source and wheel distributions in `dist/`."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _run_uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "options": "Additional CLI flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", options: str = "") -> None:
    """Run the pytest suite.

    The suite never needs a real encoder; converter tests inject a fake runner.
    """
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    _run_uv(ctx, args)


@task(help={"fix": "Apply auto-fixes where possible (ruff --fix)."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Run Ruff format checks and lint rules."""
    _run_uv(ctx, ["run", "ruff", "format", "--check", *SOURCE_PATHS])
    lint_args = ["run", "ruff", "check", *SOURCE_PATHS]
    if fix:
        lint_args.append("--fix")
    _run_uv(ctx, lint_args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _run_uv(ctx, ["run", "mypy", "src"])


@task
def encoder(ctx: Context) -> None:
    """Probe the configured FFmpeg executable through the camfeed CLI."""
    _run_uv(ctx, ["run", "camfeed", "check"])


@task
def ci(ctx: Context) -> None:
    """Replicate the CI workflow locally."""
    lint(ctx)
    mypy(ctx)
    tests(ctx)


namespace = Collection(sync, build, tests, lint, mypy, encoder, ci)
