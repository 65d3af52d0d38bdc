from __future__ import annotations

import json

import pytest

from quadmap.main import EXIT_BAD_CONFIG, EXIT_OK, EXIT_OUT_OF_DOMAIN, main

SQUARE = ["0", "0", "1", "0", "1", "1", "0", "1"]
PERSPECTIVE = ["0", "0", "4", "0", "3", "2", "1", "2"]


def _lines(capsys):
    return [json.loads(line) for line in capsys.readouterr().out.splitlines()]


def test_forward(capsys):
    rc = main(["--src", *SQUARE, "--dst", *PERSPECTIVE, "0.5,0.5", "1,0"])
    assert rc == EXIT_OK
    out = _lines(capsys)
    assert out[0]["ok"] is True
    assert out[0]["output"] == pytest.approx([2.0, 4.0 / 3.0])
    assert out[1]["output"] == pytest.approx([4.0, 0.0], abs=1e-9)
    assert out[0]["inside"] is None


def test_inverse(capsys):
    rc = main(["--src", *SQUARE, "--dst", *PERSPECTIVE, "--inverse", "2,1.3333333333333333"])
    assert rc == EXIT_OK
    assert _lines(capsys)[0]["output"] == pytest.approx([0.5, 0.5])


def test_margin_and_filter(capsys):
    rc = main(["--src", *PERSPECTIVE, "--margin", "0", "--filter", "2,1", "100,1"])
    assert rc == EXIT_OK
    out = _lines(capsys)
    assert len(out) == 1
    assert out[0]["input"] == [2.0, 1.0]
    assert out[0]["inside"] is True


def test_config_file(tmp_path, capsys):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"src_quad": [[0, 0], [2, 0], [2, 2], [0, 2]]}))
    rc = main(["--config", str(path), "1,1"])
    assert rc == EXIT_OK
    assert _lines(capsys)[0]["output"] == pytest.approx([0.5, 0.5])


def test_out_of_domain(capsys):
    # vanishing line of square -> perspective trapezoid is y = -1
    rc = main(["--src", *SQUARE, "--dst", *PERSPECTIVE, "--", "0,-1", "0.5,0.5"])
    assert rc == EXIT_OUT_OF_DOMAIN
    out = _lines(capsys)
    assert out[0]["ok"] is False
    assert out[0]["error_code"] == 1
    assert out[1]["ok"] is True


def test_degenerate_config():
    assert main(["--src", "0", "0", "1", "1", "2", "2", "3", "3", "0.5,0.5"]) == EXIT_BAD_CONFIG


def test_missing_src():
    assert main(["0.5,0.5"]) == EXIT_BAD_CONFIG


def test_missing_config_file(tmp_path, capsys):
    rc = main(["--config", str(tmp_path / "nope.json"), "0.5,0.5"])
    assert rc == EXIT_BAD_CONFIG
    out = _lines(capsys)
    assert out[0]["ok"] is False
    assert out[0]["error_code"] == 4


def test_malformed_config_file(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{not json")
    assert main(["--config", str(path), "0.5,0.5"]) == EXIT_BAD_CONFIG


def test_three_point_config_file(tmp_path, capsys):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"src_quad": [[0, 0], [1, 0], [1, 1]]}))
    rc = main(["--config", str(path), "0.5,0.5"])
    assert rc == EXIT_BAD_CONFIG
    assert _lines(capsys)[0]["error_code"] == 4


def test_non_finite_src(capsys):
    rc = main(["--src", "nan", "0", "1", "0", "1", "1", "0", "1", "0.5,0.5"])
    assert rc == EXIT_BAD_CONFIG
    assert _lines(capsys)[0]["error_code"] == 4


def test_negative_margin_rejected(capsys):
    rc = main(["--src", *SQUARE, "--margin", "-1", "0.5,0.5"])
    assert rc == EXIT_BAD_CONFIG
    out = _lines(capsys)
    assert out[0]["ok"] is False
    assert out[0]["error_code"] == 4


def test_degenerate_config_reports_code(capsys):
    rc = main(["--src", "0", "0", "1", "1", "2", "2", "3", "3", "0.5,0.5"])
    assert rc == EXIT_BAD_CONFIG
    assert _lines(capsys)[0]["error_code"] == 2


def test_missing_src_reports_not_ready(capsys):
    assert main(["0.5,0.5"]) == EXIT_BAD_CONFIG
    assert _lines(capsys)[0]["error_code"] == 3
