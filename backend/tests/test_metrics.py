"""Metric classification (ideal / workable / check)."""

import pytest

from movaia.metrics import MetricRange, classify_csv, classify_value, get_rule_table
from movaia.metrics.classification import value_status
from movaia.metrics.rules import CLASSIFICATION_V1, REPORT_V1


STEP_RATE = MetricRange(workable=(154, 192), ideal=(163, 184))


def _csv(**columns) -> str:
    header = ",".join(columns)
    row = ",".join(str(v) for v in columns.values())
    return f"{header}\n{row}\n"


@pytest.mark.parametrize(
    "value, bucket",
    [(175, "ideal"), (190, "workable"), (200, "check"), (163, "ideal"), (192, "workable")],
)
def test_classify_value_buckets(value, bucket):
    assert classify_value(STEP_RATE, value) == bucket


def test_range_without_ideal_is_never_ideal():
    rng = MetricRange(workable=(8, 30))
    assert classify_value(rng, 15) == "workable"
    assert classify_value(rng, 31) == "check"


def test_classify_csv_step_rate():
    assert classify_csv(_csv(step_rate=175), CLASSIFICATION_V1).as_dict() == {
        "ideal": 1, "workable": 0, "check": 0,
    }
    assert classify_csv(_csv(step_rate=190), CLASSIFICATION_V1).workable == 1
    assert classify_csv(_csv(step_rate=200), CLASSIFICATION_V1).check == 1


def test_missing_column_is_not_counted():
    result = classify_csv(_csv(**{"sat-l": 3}), CLASSIFICATION_V1)
    assert result.as_dict() == {"ideal": 1, "workable": 0, "check": 0}


def test_unparsable_and_blank_values_are_skipped():
    text = "step_rate,sat-l,sat-r,lean-l\nabc,,nan,4\n"
    result = classify_csv(text, CLASSIFICATION_V1)
    assert result.as_dict() == {"ideal": 1, "workable": 0, "check": 0}


def test_unknown_columns_are_ignored():
    result = classify_csv(_csv(frame=12, step_rate=170), CLASSIFICATION_V1)
    assert result.ideal + result.workable + result.check == 1


def test_header_only_csv_has_no_classification():
    assert classify_csv("step_rate,sat-l\n", CLASSIFICATION_V1) is None
    assert classify_csv("", CLASSIFICATION_V1) is None


def test_classification_is_a_pure_function_of_input():
    text = _csv(step_rate=181, **{"sat-l": 8, "sat-r": 12, "lean-l": 5, "lean-r": 7.5})
    assert classify_csv(text, CLASSIFICATION_V1) == classify_csv(text, CLASSIFICATION_V1)


def test_rule_tables_are_kept_apart():
    """The same value can land in different buckets depending on the table version."""
    assert value_status(CLASSIFICATION_V1, "step_rate", 166) == "ideal"
    assert value_status(REPORT_V1, "step_rate", 166) == "workable"
    # ground contact time: seconds vs milliseconds
    assert value_status(CLASSIFICATION_V1, "ground_contact_time-l", 0.18) == "ideal"
    assert value_status(REPORT_V1, "ground_contact_time-l", 240) == "ideal"


def test_value_status_unknown_metric():
    assert value_status(REPORT_V1, "sweep-l", 10) is None


def test_get_rule_table():
    assert get_rule_table("classification-v1") is CLASSIFICATION_V1
    assert get_rule_table("report-v1") is REPORT_V1
    with pytest.raises(ValueError):
        get_rule_table("classification-v0")
