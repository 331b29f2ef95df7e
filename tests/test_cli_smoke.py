from __future__ import annotations

import importlib
import json
import os
from pathlib import Path
from uuid import uuid4
import tomllib

from fastapi.testclient import TestClient

from emoc_workflow.cli.main import main


LOCAL_TMP_ROOT = Path(__file__).resolve().parent / ".tmp_local"


def _make_local_tmp(prefix: str) -> Path:
    LOCAL_TMP_ROOT.mkdir(parents=True, exist_ok=True)
    path = LOCAL_TMP_ROOT / f"{prefix}_{uuid4().hex[:8]}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def test_risk_cli_smoke(capsys) -> None:
    code = main(["risk", "3", "3"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["riskCode"] == "H5"
    assert payload["level"] == "Medium"


def test_seed_then_validate_cli_smoke() -> None:
    tmp = _make_local_tmp("emoc_seed")
    templates_path = tmp / "templates.json"
    report_path = tmp / "report.json"

    assert main(["seed", "--out", str(templates_path)]) == 0
    code = main(["validate", str(templates_path), "--out", str(report_path)])

    assert code == 0
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert len(report["templates"]) == 9
    assert all(entry["errors"] == {} for entry in report["templates"])


def test_validate_cli_reports_errors() -> None:
    tmp = _make_local_tmp("emoc_validate")
    templates_path = tmp / "templates.json"
    main(["seed", "--out", str(templates_path)])
    raw = json.loads(templates_path.read_text(encoding="utf-8"))
    raw["templates"][0]["parts"][0]["items"][0]["actions"][0]["nextStep"] = "item-999"
    templates_path.write_text(json.dumps(raw), encoding="utf-8")

    assert main(["validate", str(templates_path)]) == 1
    assert main(["validate", str(tmp / "missing.json")]) == 2

    broken = tmp / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert main(["validate", str(broken)]) == 2


def test_app_health_smoke() -> None:
    tmp = _make_local_tmp("health")
    db_path = tmp / "health.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path.as_posix()}"

    from app.main import create_app

    client = TestClient(create_app())
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_console_scripts_resolve_to_callables() -> None:
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    scripts = tomllib.loads(pyproject.read_text(encoding="utf-8"))["project"]["scripts"]
    assert scripts == {"emoc-tool": "emoc_workflow.cli.main:main"}
    for target in scripts.values():
        module_name, attr = target.split(":")
        assert callable(getattr(importlib.import_module(module_name), attr))
