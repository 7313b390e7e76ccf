"""Shared fixtures for camfeed tests."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

import pytest


class FakeEncoder:
    """Stand-in for `subprocess.run` that records encoder invocations.

    On success the output path (the last argument) receives a small payload.
    When ``fail`` is set the encoder optionally leaves a partial output behind
    and exits non-zero with ``stderr``.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.fail = False
        self.stderr = "Invalid data found when processing input"
        self.write_partial = True
        self.write_output = True
        self.raise_error: OSError | None = None

    def __call__(self, args: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(args))
        if self.raise_error is not None:
            raise self.raise_error
        output = Path(args[-1])
        if self.fail:
            if self.write_partial:
                output.write_bytes(b"partial")
            return subprocess.CompletedProcess(args, 1, stdout="", stderr=self.stderr)
        if self.write_output:
            output.write_bytes(b"\xff\xd8converted\xff\xd9")
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()
