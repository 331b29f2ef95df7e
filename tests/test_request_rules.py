import unittest

from app.services.request_rules import (
    options_catalogue,
    template_key_for,
    validate_all,
    validate_field,
    visible_fields,
)


def _valid_form(**overrides):
    form = {
        "mocTitle": "Replace pump impeller",
        "areaId": "area-1",
        "unitId": "unit-1-2",
        "priorityId": "priority-1",
        "lengthOfChange": "length-1",
        "typeOfChange": "type-1",
        "detailOfChange": "Swap impeller on P-101A",
        "reasonForChange": "Flow below design",
        "scopeOfWork": "Mechanical work only",
        "tpmLossType": "tpm-4",
        "estimatedBenefit": 2500000,
        "estimatedCost": 1200000,
        "riskBeforeChange": {"likelihood": 3, "impact": 3},
        "riskAfterChange": {"likelihood": 2, "impact": 2},
    }
    form.update(overrides)
    return form


class RequestValidationTests(unittest.TestCase):
    def test_complete_form_is_valid(self):
        self.assertEqual(validate_all(_valid_form()), {})

    def test_empty_form_lists_required_fields(self):
        errors = validate_all({})
        self.assertEqual(errors["mocTitle"], "MOC Title is required")
        self.assertEqual(errors["tpmLossType"], "TPM Loss Type is required")
        self.assertEqual(errors["riskBeforeChange"], "Risk Assessment (Before) is required")
        self.assertEqual(errors["lengthOfChange"], "Length of Change is required")

    def test_incomplete_risk_is_required(self):
        errors = validate_all(_valid_form(riskAfterChange={"likelihood": 2}))
        self.assertEqual(errors, {"riskAfterChange": "Risk Assessment (After) is required"})

    def test_out_of_range_risk(self):
        errors = validate_all(_valid_form(riskBeforeChange={"likelihood": 9, "impact": 1}))
        self.assertEqual(errors["riskBeforeChange"], "Likelihood and impact must be between 1 and 4")

    def test_malformed_risk_grades_become_field_errors(self):
        for bad in ({"likelihood": [1], "impact": 2}, {"likelihood": 2.7, "impact": 3}, {"likelihood": "3", "impact": 3}):
            with self.subTest(value=bad):
                self.assertEqual(
                    validate_field("riskBeforeChange", bad),
                    "Likelihood and impact must be between 1 and 4",
                )
        errors = validate_all(_valid_form(riskAfterChange={"likelihood": {"x": 1}, "impact": 2}))
        self.assertEqual(errors["riskAfterChange"], "Likelihood and impact must be between 1 and 4")

    def test_negative_and_non_numeric_amounts(self):
        errors = validate_all(_valid_form(estimatedCost=-1, estimatedBenefit="lots"))
        self.assertEqual(errors["estimatedCost"], "Value must be positive")
        self.assertEqual(errors["estimatedBenefit"], "Must be a number")

    def test_unit_must_belong_to_area(self):
        errors = validate_all(_valid_form(unitId="unit-3-1"))
        self.assertEqual(errors, {"unitId": "Unit does not belong to the selected area"})

    def test_emergency_suppresses_length_and_type(self):
        form = _valid_form(priorityId="priority-2", lengthOfChange="", typeOfChange="")
        self.assertEqual(visible_fields(form), {"lengthOfChange": False, "typeOfChange": False})
        self.assertEqual(validate_all(form), {})

        errors = validate_all(_valid_form(priorityId="priority-2"))
        self.assertIn("does not apply to Emergency", errors["lengthOfChange"])
        self.assertIn("does not apply to Emergency", errors["typeOfChange"])

    def test_overriding_suppresses_type_and_needs_end_date(self):
        form = _valid_form(lengthOfChange="length-3", typeOfChange="")
        self.assertEqual(visible_fields(form), {"lengthOfChange": True, "typeOfChange": False})
        errors = validate_all(form)
        self.assertEqual(errors, {"estimatedDurationEnd": "End date is required for a temporary or overriding change"})

        errors = validate_all(_valid_form(lengthOfChange="length-3"))
        self.assertEqual(errors["typeOfChange"], "Type of Change does not apply to Overriding changes")

    def test_end_date_not_before_start(self):
        form = _valid_form(
            lengthOfChange="length-2",
            estimatedDurationStart="2026-03-10",
            estimatedDurationEnd="2026-03-01",
        )
        self.assertEqual(validate_all(form), {"estimatedDurationEnd": "End date must not be before start date"})
        self.assertEqual(
            validate_all(_valid_form(estimatedDurationStart="tomorrow")),
            {"estimatedDurationStart": "Invalid date"},
        )

    def test_single_field_validation(self):
        self.assertEqual(validate_field("mocTitle", ""), "This field is required")
        self.assertEqual(validate_field("mocTitle", "ok"), "")
        self.assertEqual(validate_field("estimatedCost", ""), "")
        self.assertEqual(validate_field("lossEliminateValue", "-5"), "Value must be positive")


class TemplateRoutingTests(unittest.TestCase):
    def test_regular_change(self):
        self.assertEqual(
            template_key_for(_valid_form(typeOfChange="type-2", lengthOfChange="length-2")),
            ("Maintenance Change", "Temporary"),
        )

    def test_emergency(self):
        self.assertEqual(template_key_for(_valid_form(priorityId="priority-2")), ("Emergency", "N/A"))

    def test_override_split_on_three_days(self):
        short = _valid_form(
            lengthOfChange="length-3",
            estimatedDurationStart="2026-01-01",
            estimatedDurationEnd="2026-01-04",
        )
        long = dict(short, estimatedDurationEnd="2026-01-05")
        self.assertEqual(template_key_for(short), ("Override", "Less than 3 days"))
        self.assertEqual(template_key_for(long), ("Override", "More than 3 days"))

    def test_unknown_selection_has_no_template(self):
        self.assertIsNone(template_key_for(_valid_form(typeOfChange="")))

    def test_catalogue_lists_every_option_group(self):
        catalogue = options_catalogue()
        self.assertEqual(
            set(catalogue),
            {"areas", "priorities", "lengthOfChange", "typeOfChange", "tpmLossTypes", "benefits"},
        )
        self.assertEqual([p["name"] for p in catalogue["priorities"]], ["Normal", "Emergency"])
