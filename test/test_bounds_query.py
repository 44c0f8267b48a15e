import pytest

from treeworker.bounds import DEFAULT_X_TYPE, Bounds, normalize_bounds, query_bounds
from treeworker.dataset import Dataset
from treeworker.exceptions import InvalidRequestError
from treeworker.filtering import filter_by_bounds, get_nodes, reduce_over_plotting


def _ids(nodes):
    return [node["node_id"] for node in nodes]


class TestNormalizeBounds:
    def test_missing_bounds_cover_the_whole_tree(self, tree_dataset):
        assert normalize_bounds(None, tree_dataset) == Bounds(0.0, 3.0, 0.0, 4.0, DEFAULT_X_TYPE)

    def test_y_is_clamped_to_the_tree(self, tree_dataset):
        bounds = normalize_bounds({"min_y": -10, "max_y": 100}, tree_dataset)
        assert (bounds.min_y, bounds.max_y) == (0.0, 4.0)

    def test_x_is_not_clamped(self, tree_dataset):
        bounds = normalize_bounds({"min_x": -50, "max_x": 50}, tree_dataset)
        assert (bounds.min_x, bounds.max_x) == (-50.0, 50.0)

    def test_zero_is_a_real_bound(self, tree_dataset):
        bounds = normalize_bounds({"min_x": 0, "max_x": 0, "min_y": 0, "max_y": 0}, tree_dataset)
        assert (bounds.min_x, bounds.max_x, bounds.min_y, bounds.max_y) == (0.0, 0.0, 0.0, 0.0)

    @pytest.mark.parametrize("value", [None, "abc", True, float("nan")])
    def test_unusable_values_fall_back_to_extent(self, tree_dataset, value):
        bounds = normalize_bounds({"min_y": value, "max_x": value}, tree_dataset)
        assert bounds.min_y == 0.0
        assert bounds.max_x == 3.0

    def test_numeric_strings_are_accepted(self, tree_dataset):
        assert normalize_bounds({"max_y": "2"}, tree_dataset).max_y == 2.0

    def test_x_type_passes_through(self, tree_dataset):
        assert normalize_bounds({"xType": "x_time"}, tree_dataset).x_type == "x_time"

    def test_non_mapping_bounds_are_rejected(self, tree_dataset):
        with pytest.raises(InvalidRequestError):
            normalize_bounds([1, 2], tree_dataset)

    def test_non_string_x_type_is_rejected(self, tree_dataset):
        with pytest.raises(InvalidRequestError):
            normalize_bounds({"xType": 3}, tree_dataset)


class TestQueryBounds:
    def test_window_selects_nodes_in_y_order(self, tree_dataset):
        result = query_bounds(tree_dataset, {"min_y": -10, "max_y": 2})
        assert _ids(result["nodes"]) == [0, 1, 2]

    def test_window_is_closed_on_both_axes(self, tree_dataset):
        result = query_bounds(tree_dataset, {"min_x": 1, "max_x": 2.5, "min_y": 1, "max_y": 4})
        assert _ids(result["nodes"]) == [1, 2, 4]

    def test_full_tree(self, tree_dataset):
        assert _ids(query_bounds(tree_dataset, {})["nodes"]) == [0, 1, 2, 3, 4]

    def test_records_are_returned_unchanged(self, tree_dataset):
        node = query_bounds(tree_dataset, {"min_y": 3, "max_y": 3})["nodes"][0]
        assert node is tree_dataset.nodes[3]

    def test_missing_axis_matches_nothing(self, tree_dataset):
        assert query_bounds(tree_dataset, {"xType": "x_time"}) == {"nodes": []}

    def test_y_order_does_not_depend_on_node_ids(self):
        nodes = [
            {"node_id": 0, "parent_id": 0, "x_dist": 0.0, "y": 2.0, "num_tips": 2},
            {"node_id": 1, "parent_id": 0, "x_dist": 1.0, "y": 3.0, "num_tips": 1},
            {"node_id": 2, "parent_id": 0, "x_dist": 1.0, "y": 1.0, "num_tips": 1},
        ]
        dataset = Dataset.from_nodes(nodes)
        assert _ids(query_bounds(dataset, None)["nodes"]) == [2, 0, 1]


class TestOverPlotting:
    def test_coincident_tips_are_thinned(self):
        nodes = [
            {"node_id": 0, "x_dist": 0.0, "y": 0.0, "is_tip": False},
            {"node_id": 1, "x_dist": 1.0, "y": 1.0, "is_tip": True},
            {"node_id": 2, "x_dist": 1.0, "y": 1.0, "is_tip": True},
            {"node_id": 3, "x_dist": 1.0, "y": 1.0, "is_tip": False},
        ]
        kept = reduce_over_plotting(nodes, 0.0, 2.0, 0.0, 2.0, "x_dist")
        assert _ids(kept) == [0, 1, 3]

    def test_get_nodes_thins_above_the_visible_limit(self):
        nodes = [{"node_id": 0, "parent_id": 0, "x_dist": 0.0, "y": 0.0, "is_tip": False}]
        nodes += [
            {"node_id": i, "parent_id": 0, "x_dist": 1.0, "y": 1.0, "is_tip": True}
            for i in range(1, 6)
        ]
        dataset = Dataset.from_nodes(nodes)
        assert len(get_nodes(dataset, 0, 1, 0, 1, "x_dist")) == 6
        assert _ids(get_nodes(dataset, 0, 1, 0, 1, "x_dist", max_visible=3)) == [0, 1]

    def test_filter_by_bounds_keeps_input_order(self, tree_dataset):
        nodes = [tree_dataset.nodes[i] for i in (4, 2, 0)]
        assert _ids(filter_by_bounds(nodes, 0, 4, 0.5, 3, "x_dist")) == [4, 2]
