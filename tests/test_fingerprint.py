"""Tests for content fingerprints."""

from pathlib import Path

from camfeed.media.fingerprint import SAMPLE_SIZE_BYTES, FingerprintComputer


def test_identical_content_at_different_paths_shares_fingerprint(tmp_path: Path) -> None:
    first = tmp_path / "a" / "clip.mp4"
    second = tmp_path / "b" / "renamed.mp4"
    first.parent.mkdir()
    second.parent.mkdir()
    first.write_bytes(b"frame-data" * 100)
    second.write_bytes(b"frame-data" * 100)

    computer = FingerprintComputer()

    assert computer.compute(first) == computer.compute(second)
    assert len(computer.compute(first)) == 64


def test_shared_prefix_with_different_length_does_not_collide(tmp_path: Path) -> None:
    prefix = b"\x00" * SAMPLE_SIZE_BYTES
    short = tmp_path / "short.mp4"
    long = tmp_path / "long.mp4"
    short.write_bytes(prefix + b"tail")
    long.write_bytes(prefix + b"longer tail")

    computer = FingerprintComputer()

    assert computer.compute(short) != computer.compute(long)


def test_equal_prefix_and_length_share_fingerprint_by_policy(tmp_path: Path) -> None:
    # Only the first 64 KiB and the length are hashed; later bytes are ignored.
    prefix = b"\x01" * SAMPLE_SIZE_BYTES
    first = tmp_path / "first.mp4"
    second = tmp_path / "second.mp4"
    first.write_bytes(prefix + b"AAAA")
    second.write_bytes(prefix + b"BBBB")

    computer = FingerprintComputer()

    assert computer.compute(first) == computer.compute(second)


def test_small_files_hash_whole_content(tmp_path: Path) -> None:
    first = tmp_path / "one.png"
    second = tmp_path / "two.png"
    first.write_bytes(b"abc")
    second.write_bytes(b"abd")

    computer = FingerprintComputer()

    assert computer.compute(first) != computer.compute(second)
