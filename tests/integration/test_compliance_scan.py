import json

import pytest

import compliance_scan


@pytest.fixture(autouse=True)
def local_model_env(monkeypatch):
    monkeypatch.setenv("MCA_MODEL_API_MODE", "ollama")
    monkeypatch.delenv("MCA_RESULTS_LOG", raising=False)


def test_quick_command_prints_score(corpus_path, capsys):
    compliance_scan.main(["--guidelines", str(corpus_path), "quick", "--text", "Guaranteed loans! No documentation."])
    out = capsys.readouterr().out
    assert "[scan] Score: 28/100 (risk high" in out
    assert "'Guaranteed'" in out


def test_quick_command_reads_file(corpus_path, tmp_path, capsys):
    copy = tmp_path / "ad.txt"
    copy.write_text("Apply for a loan. Terms and conditions apply. APR 11%.", encoding="utf-8")
    compliance_scan.main(["--guidelines", str(corpus_path), "quick", "--file", str(copy)])
    assert "Score: 100/100" in capsys.readouterr().out


def test_rules_search_outputs_json(corpus_path, capsys):
    compliance_scan.main(["--guidelines", str(corpus_path), "rules", "--search", "apr"])
    rules = json.loads(capsys.readouterr().out)
    assert [rule["rule_id"] for rule in rules] == ["DL-002"]


def test_rules_validate_urls(corpus_path, capsys):
    compliance_scan.main(["--guidelines", str(corpus_path), "rules", "--validate-urls"])
    assert "Citation URLs: 3 valid, 0 invalid" in capsys.readouterr().out


def test_status_command(corpus_path, capsys):
    compliance_scan.main(["--guidelines", str(corpus_path), "status"])
    out = capsys.readouterr().out
    assert "Guidelines: 3 rules (version 1.0.0)" in out


def test_missing_corpus_exits(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        compliance_scan.main(["--guidelines", str(tmp_path / "absent.json"), "status"])
    assert excinfo.value.code == 1
    assert "failed to initialise analyzer" in capsys.readouterr().out


def test_checksum_pin_roundtrip(corpus_path, tmp_path, capsys):
    pin = tmp_path / "pin.json"
    compliance_scan.main(["--guidelines", str(corpus_path), "--checksum-file", str(pin), "--write-checksum"])
    assert json.loads(pin.read_text(encoding="utf-8"))["guidelines"]

    compliance_scan.main(["--guidelines", str(corpus_path), "--checksum-file", str(pin), "status"])
    assert "Guideline corpus digest verified" in capsys.readouterr().out

    corpus_path.write_text(corpus_path.read_text(encoding="utf-8") + "\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        compliance_scan.main(["--guidelines", str(corpus_path), "--checksum-file", str(pin), "status"])


def test_read_batch_assigns_missing_ids(tmp_path):
    path = tmp_path / "batch.jsonl"
    path.write_text('{"id": "x", "text": "one"}\n\n{"text": "two"}\n', encoding="utf-8")
    assert compliance_scan.read_batch(path) == [{"id": "x", "text": "one"}, {"text": "two", "id": "3"}]
