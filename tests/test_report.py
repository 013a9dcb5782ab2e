import logging

import pytest

from batchgcd.batch_gcd import run_batch_gcd
from batchgcd.report import log_summary, write_reports


def test_write_reports(tmp_path):
    result = run_batch_gcd([15, 21, 221, 221, 11])
    ids = ["k15", "k21", "k221a", "k221b", "k11"]
    compromised_path, duplicates_path = write_reports(result, ids, tmp_path / "out")

    with open(compromised_path, encoding="utf-8") as f:
        assert f.read() == "k15,3,5\nk21,3,7\n"
    with open(duplicates_path, encoding="utf-8") as f:
        assert f.read() == "k221a\nk221b\n"


def test_write_reports_empty_files(tmp_path):
    result = run_batch_gcd([35, 11])
    compromised_path, duplicates_path = write_reports(result, ["a", "b"], tmp_path)
    with open(compromised_path, encoding="utf-8") as f:
        assert f.read() == ""
    with open(duplicates_path, encoding="utf-8") as f:
        assert f.read() == ""


def test_write_reports_id_mismatch(tmp_path):
    result = run_batch_gcd([35, 11])
    with pytest.raises(ValueError):
        write_reports(result, ["a"], tmp_path)


def test_log_summary(caplog):
    caplog.set_level(logging.INFO)
    log_summary(run_batch_gcd([15, 21, 221, 221]))
    assert "Amount of target moduli:       4" in caplog.text
    assert "Amount of duplicates:          2" in caplog.text
    assert "Amount of compromised moduli:  2" in caplog.text
    assert "False positives:               0" in caplog.text
    assert "Filter duplicates" in caplog.text


def test_log_summary_single(caplog):
    log_summary(run_batch_gcd([77]))
    assert "Single modulus" in caplog.text
