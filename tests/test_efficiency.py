from dive.filetree.efficiency import efficiency
from dive.filetree.file_info import FileInfo
from dive.filetree.tree import FileTree


def blank_info(path):
    return FileInfo(path=path, type_flag=1, hash=123)


def test_efficiency():
    trees = [FileTree() for _ in range(3)]
    trees[0].add_path("/etc/nginx/nginx.conf", FileInfo(size=2000))
    trees[0].add_path("/etc/nginx/public", FileInfo(size=3000))
    trees[1].add_path("/etc/nginx/nginx.conf", FileInfo(size=5000))
    trees[1].add_path("/etc/athing", FileInfo(size=10000))
    trees[2].add_path("/etc/.wh.nginx", blank_info("/etc/.wh.nginx"))

    score, matches = efficiency(trees)

    assert score == 0.75
    assert len(matches) == 1
    assert matches[0].path == "/etc/nginx/nginx.conf"
    assert matches[0].cumulative_size == 7000


def test_efficiency_scratch_image():
    trees = [FileTree() for _ in range(3)]
    trees[0].add_path("/nothing", FileInfo(size=0))

    score, matches = efficiency(trees)

    assert score == 1.0
    assert matches == []


def test_efficiency_no_trees():
    score, matches = efficiency([])
    assert score == 1.0
    assert matches == []


def test_efficiency_sorted_by_cumulative_size():
    trees = [FileTree() for _ in range(2)]
    trees[0].add_path("/a", FileInfo(size=100))
    trees[0].add_path("/b", FileInfo(size=10))
    trees[1].add_path("/a", FileInfo(size=200))
    trees[1].add_path("/b", FileInfo(size=20))

    _, matches = efficiency(trees)

    assert [m.path for m in matches] == ["/b", "/a"]
    assert [m.cumulative_size for m in matches] == [30, 300]
    assert all(len(m.nodes) == 2 for m in matches)


def test_efficiency_unique_files_score_perfectly():
    trees = [FileTree() for _ in range(2)]
    trees[0].add_path("/a", FileInfo(size=100))
    trees[1].add_path("/b", FileInfo(size=50))

    score, matches = efficiency(trees)

    assert score == 1.0
    assert matches == []