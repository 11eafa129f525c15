from dive.filetree.diff import DiffType, FileAction, PathError


def test_merge_same_unmodified():
    assert DiffType.UNMODIFIED.merge(DiffType.UNMODIFIED) == DiffType.UNMODIFIED


def test_merge_modified_with_unmodified():
    assert DiffType.MODIFIED.merge(DiffType.UNMODIFIED) == DiffType.MODIFIED


def test_merge_identical_keeps_value():
    assert DiffType.UNMODIFIED.merge(DiffType.UNMODIFIED) == DiffType.UNMODIFIED
    assert DiffType.MODIFIED.merge(DiffType.MODIFIED) == DiffType.MODIFIED
    assert DiffType.ADDED.merge(DiffType.ADDED) == DiffType.ADDED
    assert DiffType.REMOVED.merge(DiffType.REMOVED) == DiffType.REMOVED


def test_merge_differing_is_modified():
    assert DiffType.ADDED.merge(DiffType.REMOVED) == DiffType.MODIFIED


def test_diff_type_str():
    assert str(DiffType.UNMODIFIED.merge(DiffType.UNMODIFIED)) == "Unmodified"
    assert str(DiffType.ADDED.merge(DiffType.REMOVED)) == "Modified"
    assert str(DiffType.ADDED.merge(DiffType.ADDED)) == "Added"
    assert str(DiffType.REMOVED.merge(DiffType.REMOVED)) == "Removed"


def test_file_action_str():
    add_error = PathError("/x", FileAction.ADD, ValueError("e"))
    assert str(add_error) == "unable to add '/x': e"
    assert str(add_error.action) == "add"
    remove_error = PathError("/y", FileAction.REMOVE, ValueError("e"))
    assert str(remove_error.action) == "remove"


def test_path_error_str():
    err = PathError("/etc/hosts", FileAction.REMOVE, ValueError("boom"))
    assert str(err) == "unable to remove '/etc/hosts': boom"