"""
prepdesk/tests/test_plan_validator.py
Plan item validation and name resolution for generated items
"""
import pytest

from prepdesk.errors import BadRequestError, ErrorCode
from prepdesk.services.plan_validator import (
    CatalogSubject,
    CatalogTopic,
    PlanCatalog,
    check_item,
    validate_items,
    require_valid_items,
    normalize_external_items,
)


@pytest.fixture
def plan_catalog():
    return PlanCatalog(
        subjects={
            1: CatalogSubject(id=1, name="Mathematics", exam_type_name="TYT"),
            2: CatalogSubject(id=2, name="Physics", exam_type_name="TYT"),
            3: CatalogSubject(id=3, name="Mathematics", exam_type_name="AYT"),
        },
        topics={
            10: CatalogTopic(id=10, name="Functions", subject_id=1),
            20: CatalogTopic(id=20, name="Motion", subject_id=2),
        },
    )


def _fields(violations):
    return {(v.field, v.constraint.split(" ")[0]) for v in violations}


class TestCheckItem:

    def test_valid_item(self, plan_catalog):
        item = {"day_of_week": 3, "subject_id": 1, "topic_id": 10, "duration": 60}
        assert check_item(0, item, plan_catalog) == []

    @pytest.mark.parametrize("day", [-1, 7, 12])
    def test_day_out_of_range(self, plan_catalog, day):
        violations = check_item(0, {"day_of_week": day, "subject_id": 1}, plan_catalog)
        assert [v.field for v in violations] == ["dayOfWeek"]
        assert violations[0].value == day

    def test_missing_day(self, plan_catalog):
        violations = check_item(0, {"subject_id": 1}, plan_catalog)
        assert violations[0].field == "dayOfWeek"
        assert violations[0].constraint == "required integer"

    @pytest.mark.parametrize("duration", [0, 14, 241])
    def test_duration_out_of_range(self, plan_catalog, duration):
        violations = check_item(0, {"day_of_week": 0, "subject_id": 1, "duration": duration}, plan_catalog)
        assert [v.field for v in violations] == ["duration"]

    def test_missing_duration_is_allowed(self, plan_catalog):
        assert check_item(0, {"day_of_week": 0, "subject_id": 2, "duration": None}, plan_catalog) == []

    def test_unknown_subject(self, plan_catalog):
        violations = check_item(0, {"day_of_week": 0, "subject_id": 99}, plan_catalog)
        assert violations[0].field == "subjectId"
        assert violations[0].constraint == "unknown subject"

    def test_unknown_topic(self, plan_catalog):
        violations = check_item(0, {"day_of_week": 0, "subject_id": 1, "topic_id": 999}, plan_catalog)
        assert violations[0].constraint == "unknown topic"

    def test_topic_from_another_subject(self, plan_catalog):
        violations = check_item(0, {"day_of_week": 0, "subject_id": 1, "topic_id": 20}, plan_catalog)
        assert violations[0].constraint == "topic does not belong to subject"

    def test_reports_every_problem(self, plan_catalog):
        item = {"day_of_week": 9, "subject_id": 99, "duration": 500}
        assert _fields(check_item(4, item, plan_catalog)) == {
            ("dayOfWeek", "must"), ("duration", "must"), ("subjectId", "unknown"),
        }


class TestValidateItems:

    def test_require_valid_items_raises_with_violations(self, plan_catalog):
        items = [
            {"day_of_week": 0, "subject_id": 1},
            {"day_of_week": 8, "subject_id": 1},
        ]
        with pytest.raises(BadRequestError) as exc_info:
            require_valid_items(items, plan_catalog)

        error = exc_info.value
        assert error.status_code == 400
        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.details["violations"] == [
            {"index": 1, "field": "dayOfWeek", "constraint": "must be between 0 and 6", "value": 8}
        ]

    def test_valid_items_are_normalised(self, plan_catalog):
        result = validate_items([{"day_of_week": 2.0, "subject_id": 2, "notes": "x"}], plan_catalog)
        assert result.is_valid
        assert result.items == [{
            "day_of_week": 2,
            "subject_id": 2,
            "topic_id": None,
            "duration": None,
            "question_count": None,
            "notes": "x",
        }]


class TestExternalItems:

    def test_resolves_names(self, plan_catalog):
        raw = [{"dayOfWeek": 1, "subjectName": "Physics", "topicName": "motion", "duration": 45}]
        result = normalize_external_items(raw, plan_catalog)
        assert result.items == [
            {"day_of_week": 1, "subject_id": 2, "topic_id": 20, "duration": 45, "notes": None}
        ]

    def test_exam_type_prefix_disambiguates(self, plan_catalog):
        raw = [{"dayOfWeek": 0, "subjectName": "AYT - Mathematics"}]
        result = normalize_external_items(raw, plan_catalog)
        assert result.items[0]["subject_id"] == 3

    def test_ambiguous_partial_match_is_rejected(self, plan_catalog):
        raw = [{"dayOfWeek": 0, "subjectName": "Math"}]
        result = normalize_external_items(raw, plan_catalog)
        assert result.items == []
        assert result.violations[0].field == "subjectName"

    def test_unknown_topic_is_dropped_not_invented(self, plan_catalog):
        raw = [
            {"dayOfWeek": 0, "subjectName": "Physics", "topicName": "Quantum Gravity"},
            {"dayOfWeek": 1, "subjectName": "Physics"},
        ]
        result = normalize_external_items(raw, plan_catalog)
        assert len(result.items) == 1
        assert result.items[0]["topic_id"] is None
        assert result.violations[0].index == 0

    def test_durations_are_clamped(self, plan_catalog):
        raw = [
            {"dayOfWeek": 0, "subjectName": "Physics", "duration": 10},
            {"dayOfWeek": 1, "subjectName": "Physics", "duration": 300},
            {"dayOfWeek": 2, "subjectName": "Physics"},
        ]
        result = normalize_external_items(raw, plan_catalog)
        assert [i["duration"] for i in result.items] == [30, 90, 60]

    def test_bad_day_is_dropped(self, plan_catalog):
        raw = [{"dayOfWeek": 7, "subjectName": "Physics"}, "not an item"]
        result = normalize_external_items(raw, plan_catalog)
        assert result.items == []
        assert len(result.violations) == 2
