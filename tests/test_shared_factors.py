import io
import json
import os

import pytest

import runtestwithfeedback
import shared_factors
from batchgcd.actions import dispatch_action, parse_to_int, to_32bit_or_hex

TESTCASES = os.path.join(os.path.dirname(__file__), "testcases", "batch_gcd.json")


def test_testcases_match_expected_results():
    with open(TESTCASES, encoding="utf-8") as f:
        data = json.load(f)
    out = io.StringIO()
    summary = runtestwithfeedback.evaluate(data, out=out)
    assert summary["mismatches"] == []
    assert summary["correct"] == summary["total"] == len(data["testcases"])
    assert len(out.getvalue().splitlines()) == summary["total"]


def test_main_json_prints_one_reply_per_case(tmp_path, capsys):
    path = tmp_path / "cases.json"
    path.write_text(json.dumps({
        "a": {"action": "batch_gcd", "arguments": {"moduli": ["0xf", "0x15"]}},
        "b": {"action": "rsa_factor", "arguments": {"moduli": [35, 11]}},
    }), encoding="utf-8")
    assert shared_factors.main([str(path)]) == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert lines == [
        {"id": "a", "reply": {"results": [{"status": "compromised", "p": 3, "q": 5},
                                          {"status": "compromised", "p": 3, "q": 7}],
                              "anomalies": 0}},
        {"id": "b", "reply": {"factored_moduli": []}},
    ]


def test_main_json_missing_file(tmp_path):
    assert shared_factors.main([str(tmp_path / "nope.json")]) == 1


def test_main_csv_writes_reports(tmp_path):
    csv_path = tmp_path / "moduli.csv"
    csv_path.write_text("k15,15\nk21,21\nk221a,221\nk221b,221\nk11,11\n", encoding="utf-8")
    outdir = tmp_path / "out"
    assert shared_factors.main([str(csv_path), "--base10", "-t", "2", "-o", str(outdir)]) == 0
    assert (outdir / "compromised.csv").read_text(encoding="utf-8") == "k15,3,5\nk21,3,7\n"
    assert (outdir / "duplicates.csv").read_text(encoding="utf-8") == "k221a\nk221b\n"


def test_main_csv_hex_keep_levels(tmp_path):
    csv_path = tmp_path / "moduli.csv"
    csv_path.write_text("a,6\nb,a\nc,f\n", encoding="utf-8")
    workdir = tmp_path / "levels"
    outdir = tmp_path / "out"
    assert shared_factors.main([str(csv_path), "--workdir", str(workdir), "--keep-levels",
                                "--resolve-duplicates", "-o", str(outdir)]) == 0
    assert sorted(os.listdir(workdir)) == ["level_0000.bin", "level_0001.bin", "level_0002.bin"]
    assert (outdir / "compromised.csv").read_text(encoding="utf-8") == "a,2,3\nb,2,5\nc,3,5\n"


def test_main_csv_invalid_modulus(tmp_path):
    csv_path = tmp_path / "moduli.csv"
    csv_path.write_text("a,15\nb,zz\n", encoding="utf-8")
    assert shared_factors.main([str(csv_path), "-o", str(tmp_path)]) == 1
    assert not (tmp_path / "compromised.csv").exists()


@pytest.mark.parametrize("content", [b"a,15\nb,1\x005\n", b"a,15\n\xff\xfe,21\n"])
def test_main_csv_unreadable_input(tmp_path, content):
    csv_path = tmp_path / "moduli.csv"
    csv_path.write_bytes(content)
    assert shared_factors.main([str(csv_path), "--base10", "-o", str(tmp_path)]) == 1
    assert not (tmp_path / "compromised.csv").exists()


def test_main_rejects_zero_threads(tmp_path):
    with pytest.raises(SystemExit):
        shared_factors.main([str(tmp_path / "x.csv"), "-t", "0"])


def test_dispatch_wraps_errors():
    reply = dispatch_action("batch_gcd", {"moduli": [15, 21], "threads": 0})
    assert reply["error"].startswith("Action failed: threads must be a positive integer")
    assert dispatch_action("rsa_factor", {}) == {"error": "Action failed: 'moduli'"}


def test_parse_to_int():
    assert parse_to_int("0x1f", "x") == 31
    assert parse_to_int(" 42 ", "x") == 42
    assert parse_to_int(7, "x") == 7
    with pytest.raises(ValueError):
        parse_to_int("0xgg", "x")
    with pytest.raises(ValueError):
        parse_to_int(None, "x")


def test_to_32bit_or_hex():
    assert to_32bit_or_hex(2 ** 31 - 1) == 2147483647
    assert to_32bit_or_hex(2 ** 31) == "0x80000000"
