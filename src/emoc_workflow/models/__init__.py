from .risk import Impact, Likelihood, RawRiskAssessment, RiskAssessment, RiskCodeStyle, RiskLevel
from .workflow import (
    NEXT_CURRENT,
    NEXT_END,
    NEXT_ITEM,
    NEXT_PART,
    PART_ORDER,
    PREVIOUS_ITEM,
    SYMBOLIC_NEXT_STEPS,
    ActionDisplay,
    FormTemplate,
    ItemTemplateType,
    PartName,
    RawFormTemplate,
    WorkflowAction,
    WorkflowAttachment,
    WorkflowItem,
    WorkflowPart,
    to_form_template,
    to_workflow_action,
    to_workflow_attachment,
    to_workflow_item,
    to_workflow_part,
)

__all__ = [
    "NEXT_CURRENT",
    "NEXT_END",
    "NEXT_ITEM",
    "NEXT_PART",
    "PART_ORDER",
    "PREVIOUS_ITEM",
    "SYMBOLIC_NEXT_STEPS",
    "ActionDisplay",
    "FormTemplate",
    "Impact",
    "ItemTemplateType",
    "Likelihood",
    "PartName",
    "RawFormTemplate",
    "RawRiskAssessment",
    "RiskAssessment",
    "RiskCodeStyle",
    "RiskLevel",
    "WorkflowAction",
    "WorkflowAttachment",
    "WorkflowItem",
    "WorkflowPart",
    "to_form_template",
    "to_workflow_action",
    "to_workflow_attachment",
    "to_workflow_item",
    "to_workflow_part",
]
