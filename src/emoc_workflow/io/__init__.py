from .json_loader import (
    dump_result_file,
    dump_template_file,
    load_template_file,
    parse_templates,
    template_from_json,
    template_to_json,
)

__all__ = [
    "dump_result_file",
    "dump_template_file",
    "load_template_file",
    "parse_templates",
    "template_from_json",
    "template_to_json",
]
