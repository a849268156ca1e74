import json

import pytest

import main
from core.events import ShutdownRequested
from utils.config import Config
from utils.constants import BASE_DIR


@pytest.fixture
def quiet_config(tmp_path):
    (tmp_path / "logging.json").write_text(json.dumps({"logging": {"file": False}}))
    (tmp_path / "overlay.json").write_text(json.dumps({"overlay": {"show_labels": True}}))
    return Config(str(tmp_path))


def test_parse_args_defaults_and_flags():
    args = main.parse_args([])
    assert args.video is None and not args.no_ai and not args.headless

    args = main.parse_args(["--video", "clip.mp4", "--no-ai", "--headless", "-i", "star.png"])
    assert args.video == "clip.mp4"
    assert args.no_ai and args.headless
    assert args.overlay_image == "star.png"


def test_resolve_path_is_relative_to_project_root(tmp_path):
    assert main.resolve_path("assets/models/detector.pt") == BASE_DIR / "assets/models/detector.pt"
    assert main.resolve_path(str(tmp_path)) == tmp_path


def test_node_wiring_without_detection(quiet_config, monkeypatch):
    monkeypatch.setattr(main.signal, "signal", lambda *args: None)

    node = main.LiveLensNode(video_path="clip.mp4", enable_ai=False, headless=True, config=quiet_config)

    assert not node.scheduler.enabled
    assert node.capture_stage.sink is node.scheduler
    assert node.capture_stage.source_type == "video"
    assert node.presenter.renderer.show_labels
    assert [text for text, _ in node.status.hud_lines()] == ["AI: OFF"]

    node.bus.publish(ShutdownRequested(reason="test"))
    assert node.stop_event.is_set()
    node.stop()
