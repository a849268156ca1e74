import numpy as np

from core.bus import EventBus
from core.display_subscriber import DisplaySubscriber
from core.events import (
    CaptureFailed, DetectionUnavailable, Observation, ObservationSet, OverlayImage,
    OverlayImageChanged,
)
from core.presenter import OverlayPresenter
from core.renderer import BoxPrimitive, ImagePrimitive, OverlayRenderer, Rect
from core.store import LatestValue, ResultStore
from Handlers.Detection_Visuals_Handler import DetectionVisualsHandler, present_frame
from Handlers.Overlay_Image_Handler import OverlayImageHandler

from conftest import make_frame


def test_present_frame_without_frame_is_black_view():
    canvas = present_frame(None, (200, 100))
    assert canvas.shape == (100, 200, 3)
    assert not canvas.any()


def test_present_frame_center_crops_wide_frame():
    image = np.zeros((100, 200, 3), dtype=np.uint8)
    image[:, 100:] = 255

    canvas = present_frame(image, (100, 100))

    assert canvas.shape == (100, 100, 3)
    assert (canvas[:, 10] == 0).all()
    assert (canvas[:, 90] == 255).all()


def test_compose_paints_box_and_opaque_icon():
    icon = np.zeros((10, 10, 4), dtype=np.uint8)
    icon[..., 1] = 255
    icon[..., 3] = 255
    primitives = [
        BoxPrimitive(rect=Rect(50, 25, 100, 50), color=(0, 0, 255), thickness=2),
        ImagePrimitive(rect=Rect(0, 0, 20, 20), image=OverlayImage(bitmap=icon, width=10, height=10)),
    ]

    canvas = DetectionVisualsHandler().compose(None, (200, 100), primitives)

    assert canvas.shape == (100, 200, 3)
    assert tuple(canvas[25, 100]) == (0, 0, 255)
    assert tuple(canvas[10, 10]) == (0, 255, 0)
    assert not canvas[60, 100].any()


def test_transparent_icon_leaves_frame_visible():
    icon = np.zeros((10, 10, 4), dtype=np.uint8)
    icon[..., 2] = 255
    frame = np.full((100, 100, 3), 80, dtype=np.uint8)
    primitives = [ImagePrimitive(rect=Rect(0, 0, 20, 20), image=OverlayImage(bitmap=icon, width=10, height=10))]

    canvas = DetectionVisualsHandler().compose(frame, (100, 100), primitives)

    assert tuple(canvas[10, 10]) == (80, 80, 80)


def test_icon_partly_outside_view_is_clipped():
    icon = np.full((10, 10, 3), 200, dtype=np.uint8)
    primitives = [ImagePrimitive(rect=Rect(-10, -10, 20, 20), image=OverlayImage(bitmap=icon, width=10, height=10))]

    canvas = DetectionVisualsHandler().compose(None, (50, 50), primitives)

    assert tuple(canvas[5, 5]) == (200, 200, 200)
    assert not canvas[20, 20].any()


def test_presenter_reads_latest_state_each_pass():
    bus = EventBus()
    preview = LatestValue(None)
    store = ResultStore()
    presenter = OverlayPresenter(
        preview=preview,
        store=store,
        images=OverlayImageHandler(),
        renderer=OverlayRenderer(),
        status=DisplaySubscriber(bus),
    )

    assert presenter.primitives((320, 240)) == []
    assert presenter.draw((320, 240)).shape == (240, 320, 3)

    frame = make_frame(3, width=320, height=240)
    preview.publish(frame)
    store.publish(ObservationSet.for_frame(frame, [Observation("bag", 0.95, (0.25, 0.25, 0.5, 0.5))]))

    (box,) = presenter.primitives((320, 240))
    assert box.rect == Rect(80, 60, 160, 120)
    assert presenter.draw((320, 240)).shape == (240, 320, 3)
    assert presenter.passes == 2


def test_status_lines_follow_bus_events():
    bus = EventBus()
    status = DisplaySubscriber(bus)
    assert [text for text, _ in status.hud_lines()] == ["AI: scanning"]

    bus.publish(DetectionUnavailable(reason="model missing"))
    bus.publish(CaptureFailed(reason="no device"))
    bus.publish(OverlayImageChanged(available=True, path="/tmp/icons/star.png"))
    assert [text for text, _ in status.hud_lines()] == [
        "AI: OFF", "CAMERA UNAVAILABLE", "Icon: star.png",
    ]

    bus.publish(OverlayImageChanged(available=False, path="/tmp/x.png", reason="corrupt"))
    assert status.hud_lines()[-1][0] == "Icon: failed to load"

    bus.publish(OverlayImageChanged(available=False, reason="cleared"))
    assert len(status.hud_lines()) == 2


def test_boxes_without_class_ids_are_painted_in_their_own_colors():
    primitives = [
        BoxPrimitive(rect=Rect(10, 10, 40, 40), color=(0, 0, 255), thickness=2),
        BoxPrimitive(rect=Rect(100, 10, 40, 40), color=(0, 0, 255), thickness=2),
        BoxPrimitive(rect=Rect(10, 60, 40, 30), color=(255, 0, 0), thickness=2),
    ]

    canvas = DetectionVisualsHandler().compose(None, (200, 100), primitives)

    assert tuple(canvas[10, 30]) == (0, 0, 255)
    assert tuple(canvas[10, 120]) == (0, 0, 255)
    assert tuple(canvas[60, 30]) == (255, 0, 0)
