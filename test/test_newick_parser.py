import pytest

from treeworker.exceptions import IngestionError
from treeworker.parser import (
    count_tips,
    ladderize,
    nexus_to_newick,
    parse_comment,
    parse_newick,
    parse_translate_block,
)


def names(tree):
    return [node.name for node in tree.traverse()]


class TestParseNewick:
    def test_names_and_lengths(self):
        tree = parse_newick("((A:1,B:2)X:1,C:1);")
        assert names(tree) == ["", "X", "A", "B", "C"]
        assert [node.length for node in tree.traverse()] == [None, 1.0, 1.0, 2.0, 1.0]

    def test_parent_links(self):
        tree = parse_newick("((A,B)X,C);")
        x = tree.children[0]
        assert x.parent is tree
        assert all(child.parent is x for child in x.children)

    def test_quoted_labels_keep_special_characters(self):
        tree = parse_newick("('A, (1)':1,\"B:2\":2);")
        assert [leaf.name for leaf in tree.children] == ["A, (1)", "B:2"]

    def test_comments_become_values(self):
        tree = parse_newick("(A[&&NHX:S=human:D=N]:1,B[&rate=0.5,flag]:2);")
        a, b = tree.children
        assert a.values == {"S": "human", "D": "N"}
        assert b.values == {"rate": 0.5, "flag": True}
        assert a.length == 1.0

    def test_only_the_first_tree_is_read(self):
        tree = parse_newick("(A,B);\n(C,D,E);")
        assert names(tree) == ["", "A", "B"]

    def test_missing_semicolon(self):
        assert names(parse_newick("(A,B)R")) == ["R", "A", "B"]

    def test_non_finite_and_null_lengths_become_zero(self):
        tree = parse_newick("(A:inf,B:null);")
        assert [leaf.length for leaf in tree.children] == [0.0, 0.0]

    @pytest.mark.parametrize("text", ["", "   ", "((A,B);", "(A,B));", "(A:x,B);"])
    def test_malformed_input(self, text):
        with pytest.raises(IngestionError):
            parse_newick(text)


def test_parse_comment_scalars():
    assert parse_comment("&a=1,b=2.5,c='x'") == {"a": 1, "b": 2.5, "c": "x"}


class TestLadderize:
    def test_smaller_clades_first(self):
        tree = parse_newick("((A,B)X,C);")
        tip_counts = ladderize(tree)
        assert names(tree) == ["", "C", "X", "A", "B"]
        assert tip_counts[id(tree)] == 3

    def test_count_tips(self):
        tree = parse_newick("((A,B)X,(C,D,E)Y,F);")
        tip_counts, total = count_tips(tree)
        assert total == 6
        assert tip_counts[id(tree.children[1])] == 3


NEXUS = """#NEXUS
begin taxa;
  dimensions ntax=3;
end;
begin trees;
  translate
    1 Alpha,
    2 Beta,
    3 Gamma
  ;
  tree TREE1 = [&R] ((1:0.1,2:0.2)[&label=x]:0.05,3:0.3);
end;
"""


class TestNexus:
    def test_translate_block(self):
        assert parse_translate_block(NEXUS) == {"1": "Alpha", "2": "Beta", "3": "Gamma"}

    def test_conversion(self):
        assert nexus_to_newick(NEXUS) == "((Alpha:0.1,Beta:0.2):0.05,Gamma:0.3);"

    def test_without_translate_block(self):
        text = "#NEXUS\nbegin trees;\n tree t = (A:1,B:2);\nend;\n"
        assert nexus_to_newick(text) == "(A:1,B:2);"

    def test_no_tree_statement(self):
        with pytest.raises(IngestionError):
            nexus_to_newick("#NEXUS\nbegin taxa;\nend;\n")


def test_comment_on_internal_node():
    tree = parse_newick("((A,B)[&support=90]:1,C);")
    assert tree.children[0].values == {"support": 90}
    assert tree.children[0].length == 1.0
