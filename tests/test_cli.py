import json

from PIL import Image

from dither_studio.__main__ import main

from conftest import encode_png


def _write_input(tmp_path, buffer):
    source = tmp_path / "in.png"
    source.write_bytes(encode_png(buffer))
    return source


def test_render_writes_a_dithered_image(tmp_path, gradient, capsys):
    source = _write_input(tmp_path, gradient)
    target = tmp_path / "out.png"

    code = main(["render", str(source), str(target), "--algorithm", "bayer-4x4", "--threshold", "100"])

    assert code == 0
    assert "Wrote" in capsys.readouterr().out
    with Image.open(target) as img:
        assert img.size == (8, 6)
        assert set(img.convert("RGB").getdata()) <= {(0, 0, 0), (255, 255, 255)}


def test_render_reads_settings_from_a_file(tmp_path, gradient):
    source = _write_input(tmp_path, gradient)
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"colorMode": "palette", "paletteName": "cga"}))
    target = tmp_path / "out.jpg"

    assert main(["render", str(source), str(target), "--settings", f"@{settings}"]) == 0
    with Image.open(target) as img:
        assert img.format == "JPEG"


def test_render_reports_invalid_settings(tmp_path, gradient, capsys):
    source = _write_input(tmp_path, gradient)

    code = main(["render", str(source), str(tmp_path / "out.png"), "--settings", '{"threshold": 999}'])

    assert code == 2
    assert "threshold" in capsys.readouterr().err


def test_render_reports_missing_input(tmp_path, capsys):
    code = main(["render", str(tmp_path / "missing.png"), str(tmp_path / "out.png")])
    assert code == 2
    assert "error" in capsys.readouterr().err


def test_algorithms_and_palettes_listings(capsys):
    assert main(["algorithms"]) == 0
    out = capsys.readouterr().out
    assert "floyd-steinberg" in out
    assert len(out.strip().splitlines()) == 18

    assert main(["palettes"]) == 0
    assert "gameboy" in capsys.readouterr().out


def test_extract_palette_json(tmp_path, gradient, capsys):
    source = _write_input(tmp_path, gradient)

    assert main(["extract-palette", str(source), "-k", "3", "--seed", "1", "--json"]) == 0
    colors = json.loads(capsys.readouterr().out)
    assert len(colors) == 3
