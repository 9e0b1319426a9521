from __future__ import annotations

import json
import logging
from pathlib import Path

import numpy as np
from PIL import Image

from squarefit.errors import FetchError


def _write_dummy_image(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (40, 30), (200, 100, 50)).save(str(path), format="PNG")


def _center_cutout(img, _name):
    a = np.zeros((img.height, img.width), dtype=np.uint8)
    a[5:25, 10:30] = 255
    return Image.fromarray(np.dstack([np.asarray(img.convert("RGB")), a]))


def _isolate_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for key in ("HQ", "PAD", "VBIAS", "ATHRESH", "QUALITY", "AQUALITY", "EFFORT", "DOWNLOAD_DIR", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SIZE", "64")


def test_batch_skips_bad_file_and_continues(monkeypatch, tmp_path: Path, caplog):
    from squarefit import cli as cli_mod
    from squarefit import extraction as extraction_mod

    caplog.set_level(logging.INFO)
    _isolate_env(monkeypatch, tmp_path)
    monkeypatch.setattr(extraction_mod, "remove_background_fast", _center_cutout)

    in_dir = tmp_path / "in"
    _write_dummy_image(in_dir / "a.png")
    _write_dummy_image(in_dir / "nested" / "c.JPG")
    (in_dir / "b.jpg").write_bytes(b"definitely not a jpeg")
    (in_dir / "notes.txt").write_text("skip me", encoding="utf-8")

    manifest = tmp_path / "manifest.jsonl"
    code = cli_mod.main([str(in_dir), str(tmp_path / "out"), "--manifest", str(manifest)])

    assert code == 1
    assert (tmp_path / "out" / "a.webp").exists()
    assert (tmp_path / "out" / "c.webp").exists()
    assert not (tmp_path / "out" / "b.webp").exists()

    records = [json.loads(line) for line in manifest.read_text(encoding="utf-8").splitlines()]
    assert [Path(r["source"]).name for r in records] == ["a.png", "b.jpg", "c.JPG"]
    assert [r["ok"] for r in records] == [True, False, True]
    assert records[0]["result"]["bbox"] == [10, 5, 30, 25]

    assert "✓ a.png -> a.webp" in caplog.messages
    assert "✓ c.JPG -> c.webp" in caplog.messages
    assert any(m.startswith("✗ b.jpg failed") for m in caplog.messages)
    assert any(m.startswith("Done: 2 files, 1 failed") for m in caplog.messages)


def test_same_stem_in_two_folders_warns(monkeypatch, tmp_path: Path, caplog):
    from squarefit import cli as cli_mod
    from squarefit import extraction as extraction_mod

    caplog.set_level(logging.INFO)
    _isolate_env(monkeypatch, tmp_path)
    monkeypatch.setattr(extraction_mod, "remove_background_fast", _center_cutout)
    _write_dummy_image(tmp_path / "in" / "a" / "x.jpg")
    _write_dummy_image(tmp_path / "in" / "b" / "x.png")

    assert cli_mod.main([str(tmp_path / "in"), str(tmp_path / "out")]) == 0
    overwrites = [r for r in caplog.records if r.levelno == logging.WARNING and "overwrote" in r.getMessage()]
    assert len(overwrites) == 1
    assert "x.png" in overwrites[0].getMessage()
    assert any(m.startswith("Done: 2 files") for m in caplog.messages)


def test_invalid_config_exits_two(monkeypatch, tmp_path: Path, caplog):
    from squarefit import cli as cli_mod

    _isolate_env(monkeypatch, tmp_path)
    monkeypatch.setenv("EFFORT", "9")
    _write_dummy_image(tmp_path / "in" / "a.png")

    assert cli_mod.main([str(tmp_path / "in"), str(tmp_path / "out")]) == 2
    assert any("EFFORT must be in 0..6" in m for m in caplog.messages)
    assert not (tmp_path / "out" / "a.webp").exists()


def test_batch_all_good_exits_zero(monkeypatch, tmp_path: Path):
    from squarefit import cli as cli_mod
    from squarefit import extraction as extraction_mod

    _isolate_env(monkeypatch, tmp_path)
    monkeypatch.setattr(extraction_mod, "remove_background_fast", _center_cutout)
    _write_dummy_image(tmp_path / "in" / "x.webp")

    assert cli_mod.main([str(tmp_path / "in"), str(tmp_path / "out")]) == 0
    with Image.open(tmp_path / "out" / "x.webp") as im:
        assert im.size == (64, 64)


def test_missing_input_dir(monkeypatch, tmp_path: Path):
    from squarefit import cli as cli_mod

    _isolate_env(monkeypatch, tmp_path)
    assert cli_mod.main([str(tmp_path / "nope"), str(tmp_path / "out")]) == 2


def test_url_failure_exits_nonzero(monkeypatch, tmp_path: Path):
    from squarefit import cli as cli_mod

    _isolate_env(monkeypatch, tmp_path)

    def _fail(url, dest_dir, timeout_s):
        raise FetchError(f"Failed to download {url}: 404 Client Error")

    monkeypatch.setattr(cli_mod, "download_to_dir", _fail)
    assert cli_mod.main(["https://example.com/shoe.jpg", str(tmp_path / "out")]) == 1


def test_url_success(monkeypatch, tmp_path: Path):
    from squarefit import cli as cli_mod
    from squarefit import extraction as extraction_mod

    _isolate_env(monkeypatch, tmp_path)
    monkeypatch.setattr(extraction_mod, "remove_background_fast", _center_cutout)

    def _download(url, dest_dir, timeout_s):
        p = Path(dest_dir) / "shoe.jpg"
        _write_dummy_image(p)
        return p

    monkeypatch.setattr(cli_mod, "download_to_dir", _download)
    assert cli_mod.main(["https://example.com/img/shoe.jpg", str(tmp_path / "out")]) == 0
    assert (tmp_path / "out" / "shoe.webp").exists()
    assert (tmp_path / "downloaded" / "shoe.jpg").exists()
