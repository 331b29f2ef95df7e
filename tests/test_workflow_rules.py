from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from emoc_workflow.core import (
    DanglingReferenceError,
    UnknownItemError,
    WorkflowValidationError,
    create_item,
    default_templates,
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
from emoc_workflow.core.workflow_rules import new_action, new_attachment
from emoc_workflow.models import (
    NEXT_END,
    NEXT_ITEM,
    NEXT_PART,
    PREVIOUS_ITEM,
    FormTemplate,
    WorkflowAction,
    WorkflowItem,
    WorkflowPart,
)


def _item(item_id: str, item_no: int, *actions: WorkflowAction) -> WorkflowItem:
    return WorkflowItem(
        id=item_id,
        item_no=item_no,
        title=f"Step {item_no}",
        item_template="Approve",
        role="Division Manager",
        actions=list(actions),
    )


def _part(part_id: str, part_no: int, name: str, items: list[WorkflowItem] | None = None) -> WorkflowPart:
    return WorkflowPart(id=part_id, part_no=part_no, part_name=name, items=list(items or []))


def _template_with_parts() -> FormTemplate:
    initiation = _part(
        "p1",
        1,
        "Initiation",
        [
            _item("a", 1, new_action("Approve", "Approve", NEXT_ITEM)),
            _item("b", 2, new_action("Approve", "Approve", NEXT_PART)),
        ],
    )
    review = _part("p2", 2, "Review", [_item("c", 1, new_action("Approve", "Approve", NEXT_PART))])
    implementation = _part("p3", 3, "Implementation")
    closeout = _part("p4", 4, "Closeout", [_item("d", 1, new_action("Approve", "Approve", NEXT_PART))])
    return FormTemplate(
        id="t1",
        form_no=1,
        form_name="Plant Change - Permanent",
        type_of_change="Plant Change (Impact PSI Cat 1,2,3)",
        length_of_change="Permanent",
        parts=[initiation, review, implementation, closeout],
    )


def test_create_item_numbers_sequentially() -> None:
    part = _part("p1", 1, "Initiation")
    for title in ("first", "second", "third"):
        create_item(part, title=title, role="VP Area")
    assert [i.item_no for i in part.items] == [1, 2, 3]
    assert all(i.part_id == "p1" for i in part.items)
    assert len({i.id for i in part.items}) == 3


def test_validate_item_reports_field_errors() -> None:
    item = WorkflowItem(id="x", item_no=1, title=" ", item_template="Nope", role="")
    item.attachments = [new_attachment()]
    item.actions = [WorkflowAction(id="act", display="Escalate", label="", next_step="")]
    errors = validate_item(item, [])
    assert errors["title"] == "Title is required"
    assert errors["role"] == "Role is required"
    assert "itemTemplate" in errors
    assert errors["attachment-0-name"] == "Name required"
    assert errors["attachment-0-url"] == "URL required"
    assert errors["action-0-label"] == "Label required"
    assert "action-0-display" in errors
    assert errors["action-0-next"] == "Next step required"


def test_validate_item_accepts_symbolic_and_sibling_targets() -> None:
    item = _item("a", 1, new_action("Approve", "Go", NEXT_ITEM), new_action("Submit", "Jump", "b"))
    assert validate_item(item, ["a", "b"]) == {}


def test_update_item_applies_valid_patch() -> None:
    part = _part("p1", 1, "Initiation", [_item("a", 1, new_action("Approve", "Approve", NEXT_END))])
    updated = update_item(part, "a", {"title": "Renamed", "role": "VP Area"})
    assert updated.title == "Renamed"
    assert part.items[0].role == "VP Area"


def test_update_item_rejects_invalid_patch_without_mutating() -> None:
    part = _part("p1", 1, "Initiation", [_item("a", 1, new_action("Approve", "Approve", NEXT_END))])
    with pytest.raises(WorkflowValidationError) as exc:
        update_item(part, "a", {"title": ""})
    assert exc.value.errors == {"title": "Title is required"}
    assert part.items[0].title == "Step 1"

    with pytest.raises(ValueError):
        update_item(part, "a", {"item_no": 7})
    with pytest.raises(UnknownItemError):
        update_item(part, "missing", {"title": "x"})


def test_next_item_and_next_part_resolution() -> None:
    template = _template_with_parts()
    p1, p2, _, p4 = template.parts
    a, b = p1.items

    target = resolve_next_step(a.actions[0], a, p1, template.parts)
    assert target.item is b and not target.terminal

    target = resolve_next_step(b.actions[0], b, p1, template.parts)
    assert target.part is p2
    assert target.item is p2.items[0]


def test_next_part_skips_empty_parts() -> None:
    template = _template_with_parts()
    _, p2, _, p4 = template.parts
    c = p2.items[0]
    target = resolve_next_step(c.actions[0], c, p2, template.parts)
    assert target.part is p4
    assert target.item is p4.items[0]


def test_next_part_from_last_part_is_terminal() -> None:
    template = _template_with_parts()
    p4 = template.parts[3]
    d = p4.items[0]
    target = resolve_next_step(d.actions[0], d, p4, template.parts)
    assert target.terminal
    assert target.item is None


def test_end_is_terminal() -> None:
    template = _template_with_parts()
    p1 = template.parts[0]
    a = p1.items[0]
    assert resolve_next_step(new_action("Reject", "Reject", NEXT_END), a, p1, template.parts).terminal


def test_item_navigation_clamps_at_boundaries() -> None:
    template = _template_with_parts()
    p1 = template.parts[0]
    a, b = p1.items

    back = resolve_next_step(new_action("Revise", "Back", PREVIOUS_ITEM), a, p1, template.parts)
    assert back.clamped and back.item is a

    forward = resolve_next_step(new_action("Approve", "On", NEXT_ITEM), b, p1, template.parts)
    assert forward.clamped and forward.item is b


def test_literal_target_resolution_and_dangling_reference() -> None:
    template = _template_with_parts()
    p1 = template.parts[0]
    a, b = p1.items
    target = resolve_next_step(new_action("Submit", "Jump", "b"), a, p1, template.parts)
    assert target.item is b

    with pytest.raises(DanglingReferenceError):
        resolve_next_step(new_action("Submit", "Jump", "item-999"), a, p1, template.parts)


def test_save_items_rejects_dangling_reference_atomically() -> None:
    original = [_item("a", 1, new_action("Approve", "Approve", NEXT_END))]
    part = _part("p1", 1, "Initiation", original)
    incoming = [
        _item("x", 1, new_action("Approve", "Approve", NEXT_ITEM)),
        _item("y", 2, new_action("Submit", "Jump", "item-999")),
    ]
    with pytest.raises(WorkflowValidationError) as exc:
        save_items(part, incoming)
    assert "2:action-0-next" in exc.value.errors
    assert [i.id for i in part.items] == ["a"]


def test_save_items_rejects_duplicate_ids() -> None:
    part = _part("p1", 1, "Initiation")
    dupes = [
        _item("same", 1, new_action("Approve", "Approve", NEXT_END)),
        _item("same", 2, new_action("Approve", "Approve", NEXT_END)),
    ]
    with pytest.raises(WorkflowValidationError) as exc:
        save_items(part, dupes)
    assert "1:id" in exc.value.errors
    assert part.items == []


def test_save_items_reports_every_item_when_numbers_repeat() -> None:
    part = _part("p1", 1, "Initiation")
    for title in ("First", "Second", "Third"):
        item = create_item(part, title=title, role="Division Manager")
        item.actions.append(new_action("Approve", "Approve", NEXT_END))
    delete_item(part, part.items[1].id)
    fresh = create_item(part, title="", role="Division Manager")
    fresh.actions.append(new_action("Approve", "Approve", NEXT_END))
    assert [i.item_no for i in part.items] == [1, 3, 3]

    incoming = [part.items[0], replace(part.items[1], title=""), part.items[2]]
    with pytest.raises(WorkflowValidationError) as exc:
        save_items(part, incoming)
    assert exc.value.errors == {"2:title": "Title is required", "3:title": "Title is required"}


def test_literal_self_target_is_rejected() -> None:
    item = _item("a", 1, new_action("Approve", "Again", "a"))
    errors = validate_item(item, ["a", "b"])
    assert errors == {"action-0-next": "Use 'current' to stay on this item"}

    part = _part("p1", 1, "Initiation", [item])
    with pytest.raises(WorkflowValidationError) as exc:
        save_items(part, [item])
    assert "1:action-0-next" in exc.value.errors


def test_save_items_replaces_and_sets_part_id() -> None:
    part = _part("p1", 1, "Initiation")
    save_items(part, [_item("x", 1, new_action("Approve", "Approve", NEXT_END))])
    assert [i.id for i in part.items] == ["x"]
    assert part.items[0].part_id == "p1"


def test_save_parts_is_all_or_nothing() -> None:
    template = _template_with_parts()
    before = [p.id for p in template.parts]
    bad_parts = [
        _part("n1", 1, "Initiation", [_item("a", 1, new_action("Approve", "Approve", NEXT_END))]),
        _part("n2", 2, "Somewhere"),
    ]
    with pytest.raises(WorkflowValidationError) as exc:
        save_parts(template, bad_parts)
    assert "2:partName" in exc.value.errors
    assert [p.id for p in template.parts] == before

    good = [_part("n1", 1, "Initiation", [_item("a", 1, new_action("Approve", "Approve", NEXT_END))])]
    save_parts(template, good)
    assert [p.id for p in template.parts] == ["n1"]
    assert template.parts[0].template_id == "t1"
    assert template.parts[0].items[0].part_id == "n1"


def test_delete_item_clears_references_without_renumbering(caplog: pytest.LogCaptureFixture) -> None:
    part = _part(
        "p1",
        1,
        "Initiation",
        [
            _item("a", 1, new_action("Submit", "Jump", "b")),
            _item("b", 2, new_action("Approve", "Approve", NEXT_ITEM)),
            _item("c", 3, new_action("Approve", "Approve", NEXT_END)),
        ],
    )
    with caplog.at_level(logging.WARNING):
        result = delete_item(part, "b")

    assert result.removed.id == "b"
    assert result.cleared_actions == [("a", part.items[0].actions[0].id)]
    assert part.items[0].actions[0].next_step == ""
    assert [i.item_no for i in part.items] == [1, 3]
    assert result.warnings
    assert "cleared 1 action" in caplog.text

    with pytest.raises(UnknownItemError):
        delete_item(part, "b")


def test_backward_links_warn_only_for_forward_actions() -> None:
    part = _part(
        "p1",
        1,
        "Initiation",
        [
            _item("a", 1, new_action("Approve", "Approve", NEXT_ITEM)),
            _item("b", 2, new_action("Approve", "Loop", "a"), new_action("Reject", "Send back", "a")),
        ],
    )
    warnings = find_backward_links(part)
    assert len(warnings) == 1
    assert "Loop" in warnings[0]


def test_default_templates_are_valid() -> None:
    templates = default_templates()
    assert len(templates) == 9
    assert [t.form_no for t in templates] == list(range(1, 10))
    for template in templates:
        assert validate_template(template) == {}
        assert [p.part_name for p in template.parts] == ["Initiation", "Review", "Implementation", "Closeout"]
        assert len(template.parts[0].items) == 3
        assert len(template.parts[1].items) == 5
        assert template.parts[2].items == [] and template.parts[3].items == []
    assert duplicate_template_keys(templates) == []


def test_find_template_prefers_lowest_form_no() -> None:
    templates = default_templates()
    clone = templates[0]
    twin = FormTemplate(
        id="twin",
        form_no=42,
        form_name="Copy",
        type_of_change=clone.type_of_change,
        length_of_change=clone.length_of_change,
    )
    templates.append(twin)
    found = find_template(templates, clone.type_of_change, clone.length_of_change)
    assert found is clone
    assert duplicate_template_keys(templates) == [(clone.type_of_change, clone.length_of_change)]
    assert find_template(templates, "Emergency", "N/A").form_name == "Emergency"
    assert find_template(templates, "Nope", "Permanent") is None
