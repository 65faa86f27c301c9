"""
Tests for breakdown dataset construction: top-N selection, the "Other"
remainder series and label disambiguation.
"""

import pytest

from src.engine.datasets import (
    NO_DATA_LABEL,
    OTHER_KEY,
    OTHER_LABEL,
    BreakdownView,
    ChartDataset,
    build_breakdown,
    coerce_view,
    disambiguate_labels,
)
from src.engine.index import Dimension, DimensionIndex
from src.utils.data_normalizer import FactNormalizer
from tests.conftest import DISK_WEB, SUB_A, SUB_B, VM_API, VM_WEB, make_record


def _breakdown(records, view, top_n=15, row_ids=None):
    rows = FactNormalizer().normalize(records).rows
    index = DimensionIndex.build(rows)
    return build_breakdown(
        view, rows, index, index.all_row_ids if row_ids is None else row_ids, top_n=top_n
    )


class TestTopN:
    """Test cases for top-N and the Other series."""

    def test_top_fifteen_plus_other(self, many_entity_records):
        result = _breakdown(many_entity_records, BreakdownView.BY_CATEGORY)

        assert len(result.datasets) == 16
        assert [d.key for d in result.datasets[:3]] == ["Category 00", "Category 01", "Category 02"]
        other = result.datasets[-1]
        assert other.label == OTHER_LABEL
        assert other.is_other
        assert other.values == [pytest.approx(415.0), pytest.approx(165.0)]

    def test_series_add_up_to_day_totals(self, many_entity_records):
        result = _breakdown(many_entity_records, BreakdownView.BY_CATEGORY)
        for position in range(len(result.days)):
            stacked = sum(dataset.values[position] for dataset in result.datasets)
            expected = sum(r["CostInBillingCurrency"] for r in many_entity_records[position::2])
            assert stacked == pytest.approx(expected)

    def test_other_never_negative(self, many_entity_records):
        for top_n in (1, 5, 15, 19):
            result = _breakdown(many_entity_records, BreakdownView.BY_CATEGORY, top_n=top_n)
            other = [d for d in result.datasets if d.is_other]
            assert other
            assert all(value >= 0 for value in other[0].values)

    def test_other_omitted_when_empty(self, four_row_records):
        result = _breakdown(four_row_records, BreakdownView.BY_CATEGORY)
        assert [d.label for d in result.datasets] == ["Compute", "Storage"]
        assert not any(d.is_other for d in result.datasets)

    def test_other_is_last_even_when_largest(self, many_entity_records):
        result = _breakdown(many_entity_records, BreakdownView.BY_CATEGORY, top_n=1)
        assert result.datasets[0].key == "Category 00"
        assert result.datasets[-1].key == OTHER_KEY
        assert result.datasets[-1].total > result.datasets[0].total

    def test_datasets_sorted_by_total(self, sample_records):
        result = _breakdown(sample_records, BreakdownView.BY_SUBSCRIPTION)
        totals = [d.total for d in result.datasets if not d.is_other]
        assert totals == sorted(totals, reverse=True)
        assert [d.label for d in result.datasets] == ["Production", "Development"]


class TestDeterminism:
    """Equal totals are ordered by canonical key."""

    def test_tie_break_on_key(self):
        records = [
            make_record("2024-01-01", "Zeta", 5.0),
            make_record("2024-01-01", "Alpha", 5.0),
            make_record("2024-01-01", "Mid", 5.0),
        ]
        for _ in range(3):
            result = _breakdown(records, BreakdownView.BY_CATEGORY)
            assert [d.key for d in result.datasets] == ["Alpha", "Mid", "Zeta"]

    def test_tied_entities_at_cutoff(self):
        records = [make_record("2024-01-01", name, 5.0) for name in ("B", "C", "A")]
        result = _breakdown(records, BreakdownView.BY_CATEGORY, top_n=2)
        assert [d.key for d in result.datasets] == ["A", "B", OTHER_KEY]


class TestViews:
    """Test cases for each breakdown view."""

    def test_total_view(self, four_row_records):
        result = _breakdown(four_row_records, BreakdownView.TOTAL)
        assert len(result.datasets) == 1
        assert result.datasets[0].values == [pytest.approx(15.0), pytest.approx(10.0)]
        assert result.total_local == pytest.approx(25.0)

    def test_resource_view_puts_non_resource_lines_in_other(self, sample_records):
        result = _breakdown(sample_records, BreakdownView.BY_RESOURCE)

        assert [d.key for d in result.datasets] == [VM_WEB, VM_API, DISK_WEB, OTHER_KEY]
        # Bandwidth (3) and table storage (1) per day, scaled 1 / 1.5 / 2
        assert result.datasets[-1].values == [pytest.approx(4.0), pytest.approx(6.0), pytest.approx(8.0)]

    def test_meter_view_labels_by_meter_name(self, sample_records):
        result = _breakdown(sample_records, "meter")
        assert result.datasets[0].label == "D2s v3"
        assert result.datasets[0].key == "virtual machines|dv3 series|d2s v3"

    def test_restricted_row_set(self, sample_records):
        rows = FactNormalizer().normalize(sample_records).rows
        index = DimensionIndex.build(rows)
        active = index.rows(Dimension.SUBSCRIPTION_ID, SUB_A)
        result = build_breakdown(BreakdownView.BY_SUBSCRIPTION, rows, index, active)

        assert [d.key for d in result.datasets] == [SUB_A]
        assert SUB_B not in {d.key for d in result.datasets}

    def test_empty_active_set(self, sample_records):
        result = _breakdown(sample_records, BreakdownView.BY_CATEGORY, row_ids=frozenset())

        assert not result.has_data
        assert result.days == []
        assert [d.label for d in result.datasets] == [NO_DATA_LABEL]

    def test_unknown_view(self):
        with pytest.raises(ValueError, match="Unknown breakdown view 'region'"):
            coerce_view("region")

    def test_to_dict(self, four_row_records):
        data = _breakdown(four_row_records, BreakdownView.BY_CATEGORY).to_dict()
        assert data["view"] == "category"
        assert data["days"] == ["2024-01-01", "2024-01-02"]


class TestLabels:
    """Test cases for label disambiguation."""

    def test_duplicate_resource_names(self):
        records = [
            make_record("2024-01-01", "VM", 9.0, resource_id=f"/subscriptions/{SUB_A}/x/vm", resource_name="vm"),
            make_record("2024-01-01", "VM", 7.0, resource_id=f"/subscriptions/{SUB_B}/x/vm", resource_name="vm"),
            make_record("2024-01-01", "VM", 5.0, resource_id=f"/subscriptions/{SUB_B}/y/vm", resource_name="vm"),
        ]
        result = _breakdown(records, BreakdownView.BY_RESOURCE)
        assert [d.label for d in result.datasets] == ["vm", "vm (2)", "vm (3)"]

    def test_suffix_skips_existing_label(self):
        datasets = [
            ChartDataset(key="a", label="db"),
            ChartDataset(key="b", label="db (2)"),
            ChartDataset(key="c", label="db"),
        ]
        assert [d.label for d in disambiguate_labels(datasets)] == ["db", "db (2)", "db (3)"]

    def test_remainder_keeps_other_label(self):
        datasets = [
            ChartDataset(key="Other", label="Other"),
            ChartDataset(key=OTHER_KEY, label=OTHER_LABEL, is_other=True),
        ]
        result = disambiguate_labels(datasets)
        assert [d.label for d in result] == ["Other (2)", OTHER_LABEL]
        assert result[1].key == OTHER_KEY

    def test_entity_named_other(self):
        """Test that a category literally named "Other" does not take the remainder's label."""
        records = [
            make_record("2024-01-01", "Other", 9.0),
            make_record("2024-01-01", "A", 7.0),
            make_record("2024-01-01", "B", 5.0),
        ]
        result = _breakdown(records, BreakdownView.BY_CATEGORY, top_n=2)

        assert [d.label for d in result.datasets] == ["Other (2)", "A", OTHER_LABEL]
        assert result.datasets[0].key == "Other"
        assert result.datasets[-1].is_other
        assert result.datasets[-1].total == pytest.approx(5.0)
