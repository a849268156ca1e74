import json

import pytest

from utils.config import Config, ENV_OVERRIDES
from utils.constants import CONFIGS_DIR


def _write(directory, name, payload):
    path = directory / name
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


def test_shipped_configs_load():
    config = Config(str(CONFIGS_DIR))
    assert config.get_int('camera.width') == 1280
    assert config.get_bool('overlay.show_labels', True) is False
    assert config.get_int('overlay.box_thickness') == 2
    assert config.get_float('ai.min_confidence') == 0.25


def test_files_are_merged_and_nested_sections_combine(tmp_path):
    _write(tmp_path, "a.json", {"camera": {"index": 0, "fps": 30}})
    _write(tmp_path, "b.json", {"camera": {"fps": 15}, "overlay": {"show_labels": True}})

    config = Config(str(tmp_path))

    assert config.get('camera') == {"index": 0, "fps": 15}
    assert config.get_bool('overlay.show_labels') is True


def test_broken_file_is_skipped(tmp_path):
    _write(tmp_path, "a.json", "{not json")
    _write(tmp_path, "b.json", [1, 2, 3])
    _write(tmp_path, "c.json", {"ai": {"enabled": False}})

    config = Config(str(tmp_path))

    assert config.get_bool('ai.enabled', True) is False
    assert config.get('camera') is None


def test_environment_overrides(tmp_path, monkeypatch):
    _write(tmp_path, "camera.json", {"camera": {"index": 0}})
    monkeypatch.setenv('LIVELENS_CAMERA_INDEX', '2')
    monkeypatch.setenv('LIVELENS_LOG_LEVEL', 'DEBUG')

    config = Config(str(tmp_path))

    assert config.get_int('camera.index') == 2
    assert config.get('logging.level') == 'DEBUG'


def test_typed_getters_fall_back_on_bad_values(tmp_path):
    _write(tmp_path, "x.json", {"camera": {"fps": "fast"}, "overlay": {"show_labels": "yes"}})
    config = Config(str(tmp_path))

    assert config.get_int('camera.fps', 30) == 30
    assert config.get_float('camera.fps', 1.5) == 1.5
    assert config.get_bool('overlay.show_labels') is True
    assert config.get('missing.key', 'dflt') == 'dflt'


def test_missing_directory_gives_empty_config(tmp_path):
    config = Config(str(tmp_path / "absent"))
    assert config.get('camera') is None
