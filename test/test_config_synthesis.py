import pytest

from treeworker.config_synthesis import (
    SINGLE_COLOR_MAPPING,
    pretty_name,
    synthesize_config,
    type_from_key,
)
from treeworker.dataset import Dataset

from conftest import make_tree_dataset


@pytest.mark.parametrize(
    "key, label",
    [("meta_Country", "Country"), ("mutation", "Mutation"), ("num_tips", "Num_tips"), ("name", "Name")],
)
def test_pretty_name(key, label):
    assert pretty_name(key) == label


@pytest.mark.parametrize(
    "key, search_type",
    [
        ("num_tips", "number"),
        ("genbank", "text_per_line"),
        ("meta_Lineage", "text_exact"),
        ("genotype", "genotype"),
        ("meta_Country", "text_match"),
    ],
)
def test_type_from_key(key, search_type):
    assert type_from_key(key) == search_type


class TestSynthesizeConfig:
    def test_view_defaults(self, tree_dataset):
        config = synthesize_config(tree_dataset)
        assert config["num_nodes"] == 5
        assert config["initial_x"] == 1.5
        assert config["initial_y"] == 2
        assert config["initial_zoom"] == -2
        assert config["x_accessors"] == ["x_dist"]
        assert config["name_accessor"] == "name"
        assert config["rootId"] == 0

    def test_genes_skip_missing_names(self, tree_dataset):
        assert synthesize_config(tree_dataset)["genes"] == ["N", "S"]

    def test_display_keys_exclude_structural_fields(self, tree_dataset):
        assert synthesize_config(tree_dataset)["keys_to_display"] == ["meta_Country"]

    def test_search_types(self, tree_dataset):
        search_types = synthesize_config(tree_dataset)["search_types"]
        assert [entry["name"] for entry in search_types] == [
            "name",
            "meta_Country",
            "mutation",
            "genotype",
            "revertant",
            "num_tips",
            "boolean",
        ]
        assert [entry["label"] for entry in search_types] == [
            "Name",
            "Country",
            "Mutation",
            "Genotype",
            "Revertant",
            "Num_tips",
            "Boolean",
        ]
        with_controls = [entry["name"] for entry in search_types if entry.get("controls")]
        assert with_controls == ["name", "meta_Country"]

    def test_colour_options(self, tree_dataset):
        config = synthesize_config(tree_dataset)
        assert config["colorBy"] == {"colorByOptions": ["meta_Country", "genotype", "None"]}
        assert config["defaultColorByField"] == "meta_Country"
        assert "colorMapping" not in config

    def test_preferred_default_colour_field(self):
        nodes = [{"node_id": 0, "parent_id": 0, "x_dist": 0.0, "y": 0.0, "meta_pangolin_lineage": "B.1"}]
        config = synthesize_config(Dataset.from_nodes(nodes))
        assert config["defaultColorByField"] == "meta_pangolin_lineage"

    def test_without_mutations(self, bare_dataset):
        config = synthesize_config(bare_dataset)
        names = [entry["name"] for entry in config["search_types"]]
        assert "mutation" not in names and "revertant" not in names
        assert config["colorBy"]["colorByOptions"] == ["meta_Country", "None"]
        assert config["genes"] == []

    def test_single_colour_option_gets_a_mapping(self):
        nodes = [{"node_id": 0, "parent_id": 0, "name": "A", "x_dist": 0.0, "y": 0.0}]
        config = synthesize_config(Dataset.from_nodes(nodes))
        assert config["colorBy"]["colorByOptions"] == ["None"]
        assert config["colorMapping"] == SINGLE_COLOR_MAPPING
        assert config["defaultColorByField"] == "None"

    def test_time_axis_detected_from_first_node(self):
        nodes = [{"node_id": 0, "parent_id": 0, "x_dist": 0.0, "x_time": 2020.5, "y": 0.0}]
        assert synthesize_config(Dataset.from_nodes(nodes))["x_accessors"] == ["x_dist", "x_time"]

    def test_root_mutations_and_mutation_table(self, tree_dataset):
        config = synthesize_config(tree_dataset)
        assert config["rootMutations"] == [5]
        assert len(config["mutations"]) == 6

    def test_overwrite_config_wins(self):
        dataset = make_tree_dataset(overwrite_config={"initial_zoom": 3, "title": "Demo"})
        config = synthesize_config(dataset)
        assert config["initial_zoom"] == 3
        assert config["title"] == "Demo"

    def test_repeated_calls_agree(self, tree_dataset):
        assert synthesize_config(tree_dataset) == synthesize_config(tree_dataset)
