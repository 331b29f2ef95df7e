from .risk_matrix import (
    compare_assessments,
    create_risk_assessment,
    determine_risk_level,
    get_risk_code_style,
    probability_columns,
    risk_matrix_rows,
    to_risk_assessment,
)
from .template_seed import ROLE_OPTIONS, default_parts, default_templates
from .workflow_rules import (
    DanglingReferenceError,
    DeleteResult,
    StepTarget,
    UnknownItemError,
    WorkflowValidationError,
    create_item,
    delete_item,
    duplicate_template_keys,
    find_backward_links,
    find_template,
    resolve_next_step,
    save_items,
    save_parts,
    update_item,
    validate_item,
    validate_template,
)

__all__ = [
    "ROLE_OPTIONS",
    "DanglingReferenceError",
    "DeleteResult",
    "StepTarget",
    "UnknownItemError",
    "WorkflowValidationError",
    "compare_assessments",
    "create_item",
    "create_risk_assessment",
    "default_parts",
    "default_templates",
    "delete_item",
    "determine_risk_level",
    "duplicate_template_keys",
    "find_backward_links",
    "find_template",
    "get_risk_code_style",
    "probability_columns",
    "resolve_next_step",
    "risk_matrix_rows",
    "save_items",
    "save_parts",
    "to_risk_assessment",
    "update_item",
    "validate_item",
    "validate_template",
]
