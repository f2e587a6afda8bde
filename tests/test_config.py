from __future__ import annotations

import pytest

from codewiki.config import init_config, load_config
from codewiki.errors import ConfigError


def test_defaults_without_file(tmp_path):
    cfg = load_config(tmp_path)
    assert cfg.root == tmp_path
    assert cfg.name == tmp_path.name
    assert cfg.content_dir == tmp_path / "docs"
    assert cfg.content.include == ["**/*.md", "**/*.markdown"]
    assert cfg.search.default_limit == 10
    assert cfg.watch.interval == 1.0


def test_load_sections(tmp_path):
    (tmp_path / "codewiki.toml").write_text(
        '[wiki]\nname = "handbook"\ncontent_dir = "content"\n'
        '[content]\ninclude = ["**/*.md"]\nmax_size_kb = 64\n'
        "[search]\ntitle_weight = 5\nprefix_weight = 0.25\ndefault_limit = 3\n"
        "[watch]\ninterval = 0.5\n"
    )
    cfg = load_config(tmp_path)
    assert cfg.name == "handbook"
    assert cfg.content_dir == tmp_path / "content"
    assert cfg.content.max_size_kb == 64
    weights = cfg.search.weights()
    assert weights.title == 5.0
    assert weights.prefix == 0.25
    assert cfg.search.default_limit == 3
    assert cfg.watch.interval == 0.5


def test_root_found_by_walking_up(tmp_path):
    (tmp_path / "codewiki.toml").write_text('[wiki]\nname = "up"\n')
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert load_config(nested).root == tmp_path


@pytest.mark.parametrize("toml", [
    "[search]\ndefault_limit = 0\n",
    "[search]\ntitle_weight = -1\n",
    '[search]\nbody_weight = "heavy"\n',
    "[watch]\ninterval = 0\n",
    "[content]\nmax_size_kb = 0\n",
    '[content]\ninclude = "*.md"\n',
    "[wiki\nbroken",
])
def test_invalid_config(tmp_path, toml):
    (tmp_path / "codewiki.toml").write_text(toml)
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_init_config(tmp_path):
    path = init_config(tmp_path, name="demo")
    assert path.read_text().startswith('[wiki]\nname = "demo"')
    assert load_config(tmp_path).name == "demo"
    with pytest.raises(FileExistsError):
        init_config(tmp_path)
