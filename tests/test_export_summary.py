import json

from coral.loader import load_dataset
from scripts.export_summary import build_summary, main


def test_build_summary_sections(sample_path):
    summary = build_summary(load_dataset(str(sample_path), timeout_s=5), bin_count=5)
    assert summary["dataset"]["years"] == [2013, 2015]
    assert summary["dataset"]["n_colonies"] == 6
    assert summary["dataset"]["genera"] == ["Acr", "Mil", "Poc", "Por"]
    assert summary["population"] == [
        {"year": 2013, "live_colonies": 3},
        {"year": 2014, "live_colonies": 3},
        {"year": 2015, "live_colonies": 4},
    ]
    por = {entry["year"]: entry for entry in summary["population_by_genus"]["Por"]}
    assert por[2014]["deaths"] == 1
    assert por[2014]["count"] == 0
    assert set(summary["size_distribution"]) == {"Acr", "Poc"}
    assert summary["size_distribution"]["Poc"]["n"] == 3
    poc_2015 = summary["size_frequency"]["2015"]["Poc"]
    assert sum(b["count"] for b in poc_2015) == 3
    assert summary["survival"]["Por"][-1]["survival"] == 0.0


def test_main_writes_json(sample_path, tmp_path, capsys):
    output = tmp_path / "out" / "summary.json"
    code = main(["--source", str(sample_path), "--output", str(output), "--bins", "4"])
    assert code == 0
    written = json.loads(output.read_text(encoding="utf-8"))
    assert written["dataset"]["size_metric"] == "geometric_mean_diam"
    assert "Loaded 6 colonies" in capsys.readouterr().out


def test_main_reports_load_failure(tmp_path, capsys):
    code = main(["--source", str(tmp_path / "missing.json"), "--output", str(tmp_path / "x.json")])
    assert code == 1
    assert "Load failed" in capsys.readouterr().out
    assert not (tmp_path / "x.json").exists()
