"""
Tests for selection state: scope filters, pick sets and the active row set.
"""

import pytest

from src.engine.index import Dimension
from src.engine.selection import PickDimension, PickMode, SelectionState
from src.providers.base import InvalidSelectionError
from src.utils.data_normalizer import NO_RESOURCE, NOT_AVAILABLE
from tests.conftest import SUB_A, SUB_B, VM_API, VM_WEB

# Composite key of the Bandwidth lines, which carry no resource id
BANDWIDTH_KEY = f"{SUB_B}|{NOT_AVAILABLE}|{NO_RESOURCE}"


@pytest.fixture
def selection():
    return SelectionState()


class TestScope:
    """Test cases for scope filters."""

    def test_empty_scope_is_every_row_once(self, selection, sample_index):
        scope = selection.scope_row_ids(sample_index)
        assert sorted(scope) == list(range(sample_index.row_count))

    def test_subscription_scope(self, selection, sample_rows, sample_index):
        selection.set_scope_subscriptions([SUB_B])
        scope = selection.scope_row_ids(sample_index)

        assert scope
        assert all(sample_rows[row_id].subscription_id == SUB_B for row_id in scope)

    def test_day_range_is_inclusive(self, selection, sample_rows, sample_index):
        selection.set_scope_day_range("2024-03-02", "2024-03-03")
        days = {sample_rows[row_id].day for row_id in selection.scope_row_ids(sample_index)}
        assert days == {"2024-03-02", "2024-03-03"}

    def test_open_ended_day_range(self, selection, sample_rows, sample_index):
        selection.set_scope_day_range("2024-03-03", None)
        days = {sample_rows[row_id].day for row_id in selection.scope_row_ids(sample_index)}
        assert days == {"2024-03-03"}

    def test_scope_filters_intersect(self, selection, sample_rows, sample_index):
        selection.set_scope_subscriptions([SUB_A])
        selection.set_scope_day_range("2024-03-01", "2024-03-01")

        rows = [sample_rows[row_id] for row_id in selection.scope_row_ids(sample_index)]
        assert len(rows) == 2
        assert {row.subscription_id for row in rows} == {SUB_A}

    def test_inverted_day_range_rejected(self, selection):
        with pytest.raises(InvalidSelectionError, match="after end"):
            selection.set_scope_day_range("2024-03-03", "2024-03-01")

    def test_invalid_day_rejected(self, selection):
        with pytest.raises(InvalidSelectionError, match="Invalid start day"):
            selection.set_scope_day_range("yesterday", None)

    def test_clear_scope(self, selection, sample_index):
        selection.set_scope_subscriptions([SUB_A])
        selection.set_scope_day_range("2024-03-01", "2024-03-01")
        selection.clear_scope()

        assert not selection.has_scope
        assert len(selection.scope_row_ids(sample_index)) == sample_index.row_count

    def test_no_subscriptions_matches_nothing(self, selection, sample_index):
        selection.set_scope_subscriptions([SUB_A])
        selection.select_no_subscriptions()

        assert selection.no_subscriptions
        assert selection.has_scope
        assert selection.scope_subscriptions == frozenset()
        assert selection.scope_row_ids(sample_index) == frozenset()

        selection.toggle_pick(PickDimension.CATEGORY, "Storage")
        assert selection.active_row_ids(sample_index) == frozenset()

    @pytest.mark.parametrize("reset", ["subscriptions", "clear"])
    def test_no_subscriptions_is_reset(self, selection, sample_index, reset):
        selection.select_no_subscriptions()
        if reset == "subscriptions":
            selection.set_scope_subscriptions([SUB_B])
        else:
            selection.clear_scope()

        assert not selection.no_subscriptions
        assert selection.scope_row_ids(sample_index)


class TestPicks:
    """Test cases for pick sets and their modes."""

    def test_toggle_adds_then_removes(self, selection):
        assert selection.toggle_pick(PickDimension.CATEGORY, "Storage") is True
        assert selection.picks("category") == {"Storage"}
        assert selection.toggle_pick(PickDimension.CATEGORY, "Storage") is False
        assert not selection.has_picks

    def test_toggle_is_multi_select_within_dimension(self, selection):
        selection.toggle_pick("category", "Storage")
        selection.toggle_pick("category", "Bandwidth")
        assert selection.picks("category") == {"Storage", "Bandwidth"}

    def test_replace_is_single_select(self, selection):
        selection.toggle_pick("category", "Storage")
        selection.toggle_pick("category", "Bandwidth", PickMode.REPLACE)
        assert selection.picks("category") == {"Bandwidth"}

    def test_add_and_remove(self, selection):
        selection.toggle_pick("category", "Storage", "add")
        selection.toggle_pick("category", "Storage", "add")
        assert selection.picks("category") == {"Storage"}

        assert selection.toggle_pick("category", "Storage", "remove") is False
        assert selection.picks("category") == frozenset()

    def test_pick_in_one_dimension_clears_the_others(self, selection):
        """Test cross-dimension exclusivity."""
        selection.toggle_pick(PickDimension.CATEGORY, "Storage")
        selection.toggle_pick(PickDimension.SUBCATEGORY, "Storage|Premium SSD")
        selection.toggle_pick(PickDimension.METER, "D2s v3")
        selection.toggle_pick(PickDimension.RESOURCE, VM_WEB)

        assert selection.picks(PickDimension.RESOURCE) == {VM_WEB}
        for dimension in (PickDimension.CATEGORY, PickDimension.SUBCATEGORY, PickDimension.METER):
            assert selection.picks(dimension) == frozenset()

    def test_remove_keeps_other_dimensions(self, selection):
        selection.toggle_pick(PickDimension.CATEGORY, "Storage")
        selection.toggle_pick(PickDimension.METER, "D2s v3", PickMode.REMOVE)
        assert selection.picks(PickDimension.CATEGORY) == {"Storage"}

    def test_clear_picks(self, selection):
        selection.toggle_pick("resource", VM_WEB)
        selection.toggle_pick("resource", VM_API)
        selection.clear_picks()
        assert all(not values for values in selection.pick_sets.values())

    def test_unknown_dimension(self, selection):
        with pytest.raises(InvalidSelectionError, match="Unknown pick dimension 'colour'"):
            selection.toggle_pick("colour", "red")

    def test_unknown_mode(self, selection):
        with pytest.raises(InvalidSelectionError, match="Unknown pick mode 'flip'"):
            selection.toggle_pick("category", "Storage", "flip")

    def test_every_mutation_bumps_version(self, selection):
        versions = [selection.version]
        selection.toggle_pick("category", "Storage")
        versions.append(selection.version)
        selection.set_scope_subscriptions([SUB_A])
        versions.append(selection.version)
        selection.clear_picks()
        versions.append(selection.version)
        assert versions == sorted(set(versions))


class TestActiveRows:
    """Test cases for the active row set."""

    def test_no_picks_means_scope(self, selection, sample_index):
        selection.set_scope_subscriptions([SUB_A])
        assert selection.active_row_ids(sample_index) == selection.scope_row_ids(sample_index)

    def test_active_is_scope_intersect_picks(self, selection, sample_rows, sample_index):
        selection.set_scope_subscriptions([SUB_B])
        selection.toggle_pick(PickDimension.CATEGORY, "Storage")

        rows = [sample_rows[row_id] for row_id in selection.active_row_ids(sample_index)]
        assert len(rows) == 3
        assert all(row.subscription_id == SUB_B and row.meter_category == "Storage" for row in rows)

    def test_picks_across_dimensions_are_unioned(self, sample_rows, sample_index):
        """Test that a restored state with two pick dimensions unions them."""
        selection = SelectionState.from_dict(
            {"picks": {"category": ["Bandwidth"], "meter": ["P10 Disks"]}}
        )
        rows = [sample_rows[row_id] for row_id in selection.active_row_ids(sample_index)]

        assert len(rows) == 6
        assert {row.meter_category for row in rows} == {"Bandwidth", "Storage"}

    def test_pick_outside_scope_gives_empty_set(self, selection, sample_index):
        selection.set_scope_subscriptions([SUB_B])
        selection.toggle_pick(PickDimension.RESOURCE, VM_WEB)
        assert selection.active_row_ids(sample_index) == frozenset()

    def test_non_resource_key_pick_matches_nothing(self, selection, sample_index):
        """Test that a composite key picked directly does not select its cost lines."""
        assert sample_index.has_value(Dimension.RESOURCE_KEY, BANDWIDTH_KEY)

        selection.toggle_pick(PickDimension.RESOURCE, BANDWIDTH_KEY, PickMode.REPLACE)
        assert selection.active_row_ids(sample_index) == frozenset()

        selection.toggle_pick(PickDimension.RESOURCE, VM_WEB, PickMode.ADD)
        assert len(selection.active_row_ids(sample_index)) == 3

    def test_restored_non_resource_key_pick_matches_nothing(self, sample_index):
        selection = SelectionState.from_dict({"picks": {"resource": [BANDWIDTH_KEY]}})
        assert selection.active_row_ids(sample_index) == frozenset()

    def test_unknown_pick_value_gives_empty_set(self, selection, sample_index):
        selection.toggle_pick(PickDimension.CATEGORY, "Quantum")
        assert selection.active_row_ids(sample_index) == frozenset()

    def test_subcategory_pick_in_both_key_forms(self, selection, sample_index):
        selection.toggle_pick(PickDimension.SUBCATEGORY, "Virtual Machines|Dv3 Series")
        global_rows = selection.active_row_ids(sample_index)

        selection.toggle_pick(
            PickDimension.SUBCATEGORY, f"{SUB_A}|Virtual Machines|Dv3 Series", PickMode.REPLACE
        )
        scoped_rows = selection.active_row_ids(sample_index)

        assert len(global_rows) == 6
        assert len(scoped_rows) == 3
        assert scoped_rows < global_rows

    def test_meter_pick_by_name_or_key(self, selection, sample_index):
        selection.toggle_pick(PickDimension.METER, "usage")
        by_name = selection.active_row_ids(sample_index)

        selection.toggle_pick(PickDimension.METER, "storage|tables|usage", PickMode.REPLACE)
        by_key = selection.active_row_ids(sample_index)

        assert by_name == by_key == sample_index.rows(Dimension.METER, "Usage")

    def test_recomputation_is_idempotent(self, selection, sample_index):
        selection.toggle_pick(PickDimension.CATEGORY, "Storage")
        assert selection.active_row_ids(sample_index) == selection.active_row_ids(sample_index)


class TestSerialization:
    """Test cases for to_dict / from_dict."""

    def test_round_trip(self, selection, sample_index):
        selection.set_scope_subscriptions([SUB_A, SUB_B])
        selection.set_scope_day_range("2024-03-02", None)
        selection.toggle_pick("meter", "D2s v3")

        restored = SelectionState.from_dict(selection.to_dict())

        assert restored.to_dict() == selection.to_dict()
        assert restored.active_row_ids(sample_index) == selection.active_row_ids(sample_index)

    def test_empty_picks_omitted(self, selection):
        assert selection.to_dict() == {
            "scope": {"subscriptions": [], "no_subscriptions": False, "day_from": None, "day_to": None},
            "picks": {},
        }

    def test_no_subscriptions_round_trip(self, selection, sample_index):
        selection.select_no_subscriptions()
        restored = SelectionState.from_dict(selection.to_dict())

        assert restored.to_dict()["scope"]["no_subscriptions"] is True
        assert restored.no_subscriptions
        assert restored.scope_row_ids(sample_index) == frozenset()

    def test_from_none(self):
        assert not SelectionState.from_dict(None).has_picks

    def test_copy_is_independent(self, selection):
        selection.toggle_pick("category", "Storage")
        duplicate = selection.copy()
        duplicate.clear_picks()
        assert selection.picks("category") == {"Storage"}
