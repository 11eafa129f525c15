import pytest

from dive.filetree.diff import DiffType
from dive.filetree.file_info import FileInfo
from dive.filetree.node_data import NodeData, ViewInfo, set_global_collapse


@pytest.fixture
def reset_collapse():
    yield
    set_global_collapse(False)


def test_node_data_defaults():
    data = NodeData()
    assert data.diff_type == DiffType.UNMODIFIED
    assert data.view_info.hidden is False
    assert data.file_info == FileInfo()


def test_global_collapse_applies_to_new_views(reset_collapse):
    set_global_collapse(True)
    assert ViewInfo().collapsed is True
    assert NodeData().view_info.collapsed is True
    set_global_collapse(False)
    assert ViewInfo().collapsed is False


def test_view_info_copy_is_independent():
    view = ViewInfo(collapsed=True, hidden=True)
    dup = view.copy()
    assert dup == view
    dup.hidden = False
    assert view.hidden is True


def test_node_data_copy_is_deep():
    data = NodeData(file_info=FileInfo(path="/a", size=3), diff_type=DiffType.ADDED)
    dup = data.copy()
    assert dup == data
    dup.file_info.size = 99
    dup.view_info.hidden = True
    assert data.file_info.size == 3
    assert data.view_info.hidden is False