from pathlib import Path

import pytest

from worldofbits.config import WorldConfig, load_world_config
from worldofbits.exceptions import ConfigError


def test_embedded_defaults_match_dataclass_defaults():
    assert load_world_config() == WorldConfig()


def test_file_overrides_selected_keys(tmp_path: Path):
    path = tmp_path / "world.yaml"
    path.write_text("goal: 64\ninteraction_radius: 2\nworld_seed: demo\nsave_dir: ~/wob\n", encoding="utf-8")
    cfg = load_world_config(str(path))
    assert cfg.goal == 64
    assert cfg.interaction_radius == 2
    assert cfg.world_seed == "demo"
    assert cfg.save_dir == Path("~/wob").expanduser()
    assert cfg.cell_size == pytest.approx(1e-4)


def test_unknown_keys_are_ignored(tmp_path: Path, caplog):
    path = tmp_path / "world.yaml"
    path.write_text("colour: blue\n", encoding="utf-8")
    assert load_world_config(str(path)) == WorldConfig()
    assert "colour" in caplog.text


@pytest.mark.parametrize("text", ["goal: 0\n", "goal: lots\n", "cell_size: -1\n", "- a\n- b\n", "goal: [\n"])
def test_invalid_values_raise_config_error(tmp_path: Path, text):
    path = tmp_path / "world.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_world_config(str(path))
