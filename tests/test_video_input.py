import cv2
import numpy as np
import pytest

from Handlers.Video_Input_Handler import VideoInputHandler


@pytest.fixture
def clip_path(tmp_path):
    path = str(tmp_path / "clip.avi")
    writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*"MJPG"), 12.0, (64, 48))
    if not writer.isOpened():
        pytest.skip("no MJPG encoder in this OpenCV build")
    for i in range(4):
        writer.write(np.full((48, 64, 3), i * 40, dtype=np.uint8))
    writer.release()
    return path


def test_missing_file_fails_to_start(tmp_path):
    source = VideoInputHandler(str(tmp_path / "missing.mp4"))
    assert not source.start()
    assert source.read_frame() is None
    source.stop()


def test_plays_clip_to_the_end(clip_path):
    source = VideoInputHandler(clip_path)
    assert source.start()

    frames = []
    frame = source.read_frame()
    while frame is not None:
        frames.append(frame)
        frame = source.read_frame()
    source.stop()

    assert len(frames) == 4
    assert all(f.shape == (48, 64, 3) for f in frames)
    assert source.frames_read == 4
    assert source.fps == pytest.approx(12.0)


def test_paced_fps_uses_native_rate_below_the_cap(clip_path):
    source = VideoInputHandler(clip_path)
    assert source.paced_fps(30) == 30
    source.start()
    assert source.paced_fps(30) == 12
    assert source.paced_fps(5) == 5
    source.stop()
