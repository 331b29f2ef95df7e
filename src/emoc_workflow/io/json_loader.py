from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..models import FormTemplate, to_form_template


def template_to_json(template: FormTemplate) -> str:
    return json.dumps(template.to_payload(), indent=2)


def template_from_json(text: str) -> FormTemplate:
    raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("Template JSON must be an object.")
    return to_form_template(raw)  # type: ignore[arg-type]


def parse_templates(raw: Any) -> list[FormTemplate]:
    if isinstance(raw, dict) and "templates" in raw:
        raw = raw["templates"]
    if not isinstance(raw, list):
        raise ValueError("Input JSON must be a list of templates or an object with a 'templates' list.")
    templates: list[FormTemplate] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError("Each template must be an object.")
        templates.append(to_form_template(entry))  # type: ignore[arg-type]
    return templates


def load_template_file(path: Path) -> list[FormTemplate]:
    return parse_templates(json.loads(path.read_text(encoding="utf-8")))


def dump_template_file(path: Path, templates: list[FormTemplate]) -> None:
    payload = {"templates": [t.to_payload() for t in templates]}
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def dump_result_file(path: Path, payload: dict[str, object]) -> None:
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
