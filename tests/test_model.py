import math

import pytest

from dive.filetree.file_info import FileInfo
from dive.filetree.tree import FileTree
from dive.image.model import Image, Layer, Resolver, analyze


def _blank(path):
    return FileInfo(path=path, type_flag=1, hash=123)


def _efficiency_trees():
    trees = [FileTree() for _ in range(3)]
    trees[0].add_path("/etc/nginx/nginx.conf", FileInfo(size=2000))
    trees[0].add_path("/etc/nginx/public", FileInfo(size=3000))
    trees[1].add_path("/etc/nginx/nginx.conf", FileInfo(size=5000))
    trees[1].add_path("/etc/athing", FileInfo(size=10000))
    trees[2].add_path("/etc/.wh.nginx", _blank("/etc/.wh.nginx"))
    return trees


def test_short_id_truncates_long_ids():
    layer = Layer(id="sha256-0123456789abcdef0123")
    short = layer.short_id()
    assert len(short) == 15
    assert layer.id.startswith(short)


def test_short_id_keeps_short_ids():
    assert Layer(id="abc").short_id() == "abc"


def test_first_layer_string():
    assert str(Layer(id="abc", index=0, size=0)) == "    0 B  FROM abc"


def test_command_is_single_line():
    text = str(Layer(id="abc", index=1, command="RUN a\nb", size=0))
    assert text.endswith("RUN a↵b")
    assert "\n" not in text


def test_analyze_efficiency_case():
    trees = _efficiency_trees()
    layers = [Layer(id=f"l{i}", index=i, size=s, tree=t) for i, (s, t) in enumerate(zip([10, 20, 30], trees))]
    result = analyze(Image(request="img", trees=trees, layers=layers))
    assert result.efficiency == 0.75
    assert result.wasted_bytes == 7000
    assert result.size_bytes == sum(layer.size for layer in layers)
    assert result.user_size_bytes == layers[1].size + layers[2].size
    assert result.wasted_user_percent == result.wasted_bytes / result.user_size_bytes
    assert result.image == "img"
    assert [data.path for data in result.inefficiencies] == ["/etc/nginx/nginx.conf"]


def test_analyze_without_user_layers_is_nan():
    tree = FileTree()
    tree.add_path("/nothing", FileInfo(size=0))
    result = analyze(Image(request="x", trees=[tree], layers=[Layer(index=0, size=5, tree=tree)]))
    assert result.efficiency == 1.0
    assert math.isnan(result.wasted_user_percent)


def test_resolver_is_abstract():
    with pytest.raises(TypeError):
        Resolver()