import pytest

from dive.filetree.comparer import Comparer, TreeIndexKey
from dive.filetree.diff import DiffType, FileAction
from dive.filetree.file_info import FileInfo
from dive.filetree.tree import FileTree


def _info(path):
    return FileInfo(path=path, type_flag=1, hash=123)


def _tree(*paths):
    tree = FileTree()
    for path in paths:
        tree.add_path(path, _info(path))
    return tree


@pytest.mark.parametrize(
    "key, text",
    [
        (TreeIndexKey(0, 0, 1, 1), "Index(0:1)"),
        (TreeIndexKey(1, 1, 2, 4), "Index(1:2-4)"),
        (TreeIndexKey(0, 2, 3, 3), "Index(0-2:3)"),
        (TreeIndexKey(0, 1, 2, 3), "Index(0-1:2-3)"),
    ],
)
def test_index_key_string(key, text):
    assert str(key) == text


def test_natural_indexes():
    cmp = Comparer([FileTree(), FileTree(), FileTree()])
    assert list(cmp.natural_indexes()) == [
        TreeIndexKey(0, 0, 0, 0),
        TreeIndexKey(0, 0, 1, 1),
        TreeIndexKey(0, 1, 2, 2),
    ]


def test_aggregated_indexes():
    cmp = Comparer([FileTree(), FileTree(), FileTree()])
    assert list(cmp.aggregated_indexes()) == [
        TreeIndexKey(0, 0, 0, 0),
        TreeIndexKey(0, 0, 1, 1),
        TreeIndexKey(0, 0, 1, 2),
    ]


def test_get_tree_marks_added_and_keeps_ref_trees():
    lower = _tree("/etc/a")
    upper = _tree("/etc/b")
    cmp = Comparer([lower, upper])
    tree = cmp.get_tree(TreeIndexKey(0, 0, 1, 1))
    assert tree.get_node("/etc/b").data.diff_type == DiffType.ADDED
    assert tree.get_node("/etc/a").data.diff_type == DiffType.UNMODIFIED
    with pytest.raises(LookupError):
        lower.get_node("/etc/b")


def test_get_tree_is_cached():
    cmp = Comparer([_tree("/a"), _tree("/b")])
    key = TreeIndexKey(0, 0, 1, 1)
    first = cmp.get_tree(key)
    assert first.get_node("/b").data.diff_type == DiffType.ADDED
    assert cmp.trees[key] is first
    second = cmp.get_tree(key)
    assert second is first
    assert len(cmp.trees) == 1


def test_path_errors_for_missing_whiteout_target():
    upper = FileTree()
    upper.add_path("/.wh.missing", FileInfo())
    cmp = Comparer([_tree("/present"), upper])
    errors = cmp.get_path_errors(TreeIndexKey(0, 0, 1, 1))
    assert [(e.path, e.action) for e in errors] == [("/missing", FileAction.REMOVE)]


def test_build_cache_clean():
    cmp = Comparer([_tree("/a"), _tree("/b"), _tree("/c")])
    assert cmp.build_cache() == []
    for key in list(cmp.natural_indexes()) + list(cmp.aggregated_indexes()):
        assert key in cmp.trees


def test_build_cache_reports_path_errors():
    upper = FileTree()
    upper.add_path("/.wh.missing", FileInfo())
    cmp = Comparer([_tree("/present"), upper])
    errors = cmp.build_cache()
    assert len(errors) == 1
    message = str(errors[0])
    assert "path error at layer index Index(0:1)" in message
    assert "unable to remove '/missing'" in message