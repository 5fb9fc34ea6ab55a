"""Tests for the directory tree and component ranking views."""

from scanaudit.core.views import (
    ALL_FILES_NAME,
    SCAN_ROOT_NAME,
    build_component_ranking,
    build_directory_tree,
    find_node,
    sorted_children,
)


def test_directory_tree_structure(store):
    root = build_directory_tree(store)

    assert root.path == ""
    assert [c.name for c in root.children] == [".", "src", "vendor"]

    src = root.child("src")
    assert [c.name for c in src.children] == ["net"]
    assert src.child("net").path == "src/net"
    assert src.child("net").parent is src
    assert root.child("vendor").child("zlib").path == "vendor/zlib"


def test_directory_tree_skips_paths_without_valid_match(store):
    root = build_directory_tree(store)
    assert root.child("docs") is None


def test_directory_tree_only_root_files(make_store):
    store = make_store({"a.c": [{"id": "file"}], "b.c": [{"id": "snippet"}]})
    root = build_directory_tree(store)

    assert len(root.children) == 1
    assert root.children[0].name == ALL_FILES_NAME
    assert root.children[0].path == ""


def test_directory_tree_empty_when_nothing_matched(make_store):
    store = make_store({"a.c": [{"id": "none"}]})
    assert build_directory_tree(store).children == []


def test_directory_tree_empty_segments_skipped(make_store):
    store = make_store({"/abs//lib/x.c": [{"id": "file"}]})
    root = build_directory_tree(store)

    abs_node = root.child("abs")
    assert abs_node is not None
    assert abs_node.child("lib") is not None


def test_sorted_children_pins_scan_root_first(make_store):
    store = make_store(
        {
            "zeta/a.c": [{"id": "file"}],
            "alpha/b.c": [{"id": "file"}],
            "top.c": [{"id": "file"}],
        }
    )
    root = build_directory_tree(store)
    assert [c.name for c in sorted_children(root)] == [SCAN_ROOT_NAME, "alpha", "zeta"]


def test_find_node(store):
    root = build_directory_tree(store)
    assert find_node(root, "src/net").name == "net"
    assert find_node(root, "missing") is None


def test_component_ranking_order(store):
    ranking = build_component_ranking(store)

    assert [(e.purl, e.count) for e in ranking] == [
        ("pkg:github/acme/libutil@v1.2.0", 2),
        ("pkg:github/acme/netkit", 1),
        ("pkg:npm/zlib", 1),
    ]
    assert ranking[0].files == ["README.md", "src/util.c"]


def test_component_ranking_independent_of_input_order(make_store):
    document = {
        "b.c": [{"id": "file", "purl": ["pkg:github/x/b"]}],
        "a.c": [{"id": "file", "purl": ["pkg:github/x/a"]}],
        "c.c": [{"id": "file", "purl": []}],
    }
    reversed_document = dict(reversed(list(document.items())))

    first = build_component_ranking(make_store(document, "one.json"))
    second = build_component_ranking(make_store(reversed_document, "two.json"))

    assert [e.purl for e in first] == ["pkg:github/x/a", "pkg:github/x/b"]
    assert [e.purl for e in first] == [e.purl for e in second]
