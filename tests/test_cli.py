from __future__ import annotations

import json
import sys
from pathlib import Path

import tsv_to_indesign

ROWS = [
    "age\tpopulation\tsex\tdisease\tname\tsynonyms\ttissue",
    "72\t1\tF\tlung cancer\tA549\tA-549\tlung",
    "5\t\tM\t\t\t\t",
    "\t\t\tmelanoma\tSK-MEL-28\t\tskin",
]


def write_data(tmp_path: Path) -> Path:
    data = tmp_path / "records.tsv"
    data.write_text("\n".join(ROWS) + "\n", encoding="utf-8")
    return data


def test_dry_run_writes_proof(tmp_path: Path) -> None:
    data = write_data(tmp_path)
    out = tmp_path / "proof.txt"
    code = tsv_to_indesign.main([
        str(data), "--dry-run", "--out", str(out),
        "--log-dir", str(tmp_path / "logs"),
        "--event-log", str(tmp_path / "events.txt"),
        "--checkpoint-every", "0",
    ])
    assert code == 0
    proof = out.read_text(encoding="utf-8")
    assert proof.startswith("=== frame 1 ===")
    assert "with lung cancer" in proof
    assert "5 M" in proof
    assert "=== overset ===" not in proof
    user_log = (tmp_path / "logs" / "records.user.log").read_text(encoding="utf-8")
    assert "[REPORT][SUMMARY] records=3 groups=3/3" in user_log


def test_missing_data_file(tmp_path: Path) -> None:
    code = tsv_to_indesign.main([
        str(tmp_path / "absent.tsv"), "--dry-run", "--log-dir", str(tmp_path / "logs"),
    ])
    assert code == tsv_to_indesign.EXIT_BAD_INPUT


def test_invalid_config(tmp_path: Path) -> None:
    cfg = tmp_path / "layout.json"
    cfg.write_text(json.dumps({"fine_increment": 0.25, "coarse_increment": 0.3}), encoding="utf-8")
    code = tsv_to_indesign.main([str(write_data(tmp_path)), "--dry-run", "--config", str(cfg)])
    assert code == tsv_to_indesign.EXIT_BAD_INPUT


def test_missing_template(tmp_path: Path) -> None:
    code = tsv_to_indesign.main([
        str(write_data(tmp_path)), "-t", str(tmp_path / "absent.indt"),
        "--log-dir", str(tmp_path / "logs"),
    ])
    assert code == tsv_to_indesign.EXIT_BAD_INPUT


def test_no_host_off_windows(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(sys, "platform", "linux")
    template = tmp_path / "template.indt"
    template.write_bytes(b"\x00")
    code = tsv_to_indesign.main([
        str(write_data(tmp_path)), "-t", str(template),
        "--log-dir", str(tmp_path / "logs"),
    ])
    assert code == tsv_to_indesign.EXIT_NO_HOST
