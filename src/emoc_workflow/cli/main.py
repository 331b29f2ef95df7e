from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..core import (
    create_risk_assessment,
    default_templates,
    duplicate_template_keys,
    find_backward_links,
    validate_template,
)
from ..io import dump_result_file, dump_template_file, load_template_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="emoc-tool",
        description="Score MOC risks and check approval workflow templates.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    risk = sub.add_parser("risk", help="Score a likelihood/impact pair (1-4 each)")
    risk.add_argument("likelihood", type=int, choices=[1, 2, 3, 4])
    risk.add_argument("impact", type=int, choices=[1, 2, 3, 4])

    validate = sub.add_parser("validate", help="Validate a workflow template JSON file")
    validate.add_argument("input", help="JSON file containing a list of templates")
    validate.add_argument("--out", default="", help="Optional JSON report path")

    seed = sub.add_parser("seed", help="Write the default workflow templates")
    seed.add_argument("--out", default="templates.json", help="Output JSON file path")
    return parser


def _run_risk(args: argparse.Namespace) -> int:
    assessment = create_risk_assessment(args.likelihood, args.impact)
    print(json.dumps(assessment.to_payload(), indent=2))
    return 0


def _run_validate(args: argparse.Namespace) -> int:
    input_path = Path(args.input).resolve()
    if not input_path.exists() or not input_path.is_file():
        print(f"error: input file not found: {input_path}", file=sys.stderr)
        return 2

    try:
        templates = load_template_file(input_path)
    except (OSError, TypeError, ValueError) as exc:
        print(f"error: invalid input: {exc}", file=sys.stderr)
        return 2

    report: dict[str, object] = {"templates": []}
    error_count = 0
    for template in templates:
        errors = validate_template(template)
        warnings = [w for part in template.parts for w in find_backward_links(part)]
        error_count += len(errors)
        report["templates"].append(  # type: ignore[union-attr]
            {"id": template.id, "formName": template.form_name, "errors": errors, "warnings": warnings}
        )
        status = "ok" if not errors else f"{len(errors)} error(s)"
        print(f"{template.form_no:>3} {template.form_name}: {status}")
        for key, msg in sorted(errors.items()):
            print(f"      {key}: {msg}")
        for warning in warnings:
            print(f"      warning: {warning}")

    duplicates = duplicate_template_keys(templates)
    report["duplicateKeys"] = [list(k) for k in duplicates]
    for type_of_change, length_of_change in duplicates:
        print(f"warning: more than one template for {type_of_change} / {length_of_change}")

    if args.out:
        output_path = Path(args.out).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        dump_result_file(output_path, report)
        print(f"wrote={output_path}")
    return 1 if error_count else 0


def _run_seed(args: argparse.Namespace) -> int:
    output_path = Path(args.out).resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    templates = default_templates()
    dump_template_file(output_path, templates)
    print(f"templates={len(templates)}")
    print(f"wrote={output_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "risk":
        return _run_risk(args)
    if args.command == "validate":
        return _run_validate(args)
    return _run_seed(args)


if __name__ == "__main__":
    raise SystemExit(main())
