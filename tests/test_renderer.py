import numpy as np
import pytest

from core.events import Observation, ObservationSet, OverlayImage
from core.renderer import (
    OverlayRenderer, ViewGeometry, Rect, BoxPrimitive, ImagePrimitive, TextPrimitive,
    normalized_to_view, aspect_fill_transform, icon_rect,
)


def _set(*observations, frame_size=(1000, 1000)):
    return ObservationSet(observations=tuple(observations), frame_sequence=1, frame_size=frame_size)


def _icon(size=100):
    return OverlayImage(bitmap=np.zeros((size, size, 3), dtype=np.uint8), width=size, height=size)


VIEW = ViewGeometry.of_size(1000, 1000)
BAG = Observation("bag", 0.95, (0.4, 0.4, 0.2, 0.2))


def test_scenario_a_single_box_without_icon():
    primitives = OverlayRenderer().render(VIEW, _set(BAG), None)

    assert len(primitives) == 1
    box = primitives[0]
    assert isinstance(box, BoxPrimitive)
    assert box.rect.x == pytest.approx(400)
    assert box.rect.y == pytest.approx(400)
    assert box.rect.width == pytest.approx(200)
    assert box.rect.height == pytest.approx(200)


def test_scenario_b_box_and_icon_twice_the_width_top_anchored():
    primitives = OverlayRenderer().render(VIEW, _set(BAG), _icon(100))

    assert [type(p) for p in primitives] == [BoxPrimitive, ImagePrimitive]
    box, icon = primitives
    assert icon.rect.width == pytest.approx(2 * box.rect.width)
    assert icon.rect.height == pytest.approx(icon.rect.width)
    assert icon.rect.mid_x == pytest.approx(box.rect.mid_x)
    assert icon.rect.min_y == pytest.approx(box.rect.min_y)
    assert icon.rect.x == pytest.approx(300)


@pytest.mark.parametrize("confidence, drawn", [
    (0.8, False),
    (0.8000001, True),
    (0.79, False),
    (1.0, True),
    (0.0, False),
])
def test_confidence_threshold_is_strict(confidence, drawn):
    observation = Observation("bag", confidence, (0.1, 0.1, 0.1, 0.1))
    primitives = OverlayRenderer().render(VIEW, _set(observation), None)
    assert (len(primitives) == 1) is drawn


@pytest.mark.parametrize("image, per_observation", [(None, 1), (_icon(), 2)])
def test_primitive_count_law(image, per_observation):
    observations = [
        Observation("a", 0.9, (0.0, 0.0, 0.1, 0.1)),
        Observation("b", 0.99, (0.5, 0.5, 0.2, 0.3)),
        Observation("c", 0.5, (0.2, 0.2, 0.1, 0.1)),   # below threshold
        Observation("d", 0.81, (0.7, 0.1, 0.2, 0.2)),
    ]
    primitives = OverlayRenderer().render(VIEW, _set(*observations), image)
    assert len(primitives) == 3 * per_observation


def test_labels_are_off_by_default_and_configurable():
    assert not any(isinstance(p, TextPrimitive)
                   for p in OverlayRenderer().render(VIEW, _set(BAG), _icon()))

    primitives = OverlayRenderer(show_labels=True).render(VIEW, _set(BAG), _icon())
    texts = [p for p in primitives if isinstance(p, TextPrimitive)]
    assert len(texts) == 1
    label = texts[0]
    assert label.text == "bag (95%)"
    assert label.rect.mid_x == pytest.approx(500)
    assert label.rect.max_y < 400


def test_empty_set_before_first_publish_renders_nothing():
    assert OverlayRenderer().render(VIEW, ObservationSet.empty(), _icon()) == []


def test_zero_sized_view_renders_nothing():
    assert OverlayRenderer().render(ViewGeometry.of_size(0, 0), _set(BAG), None) == []


def test_each_pass_returns_a_fresh_list():
    renderer = OverlayRenderer()
    first = renderer.render(VIEW, _set(BAG), None)
    second = renderer.render(VIEW, _set(), None)
    assert len(first) == 1
    assert second == []


def test_aspect_fill_crops_wide_frame_into_square_view():
    # 1920x1080 into 1000x1000: height fills, width overflows and is cropped
    scale, offset_x, offset_y = aspect_fill_transform((1920, 1080), Rect(0, 0, 1000, 1000))
    assert scale == pytest.approx(1000 / 1080)
    assert offset_y == pytest.approx(0)
    assert offset_x == pytest.approx((1000 - 1920 * scale) / 2)

    rect = normalized_to_view((0.5, 0.0, 0.1, 1.0), (1920, 1080), Rect(0, 0, 1000, 1000))
    assert rect.x == pytest.approx(500)
    assert rect.y == pytest.approx(0)
    assert rect.width == pytest.approx(192 * scale)
    assert rect.height == pytest.approx(1000)


def test_aspect_fill_crops_tall_frame_into_wide_view_with_offset_bounds():
    bounds = Rect(10, 20, 1600, 900)
    rect = normalized_to_view((0.0, 0.5, 1.0, 0.5), (480, 640), bounds)
    scale = 1600 / 480
    assert rect.x == pytest.approx(10)
    assert rect.width == pytest.approx(1600)
    assert rect.y == pytest.approx(20 + (900 - 640 * scale) / 2 + 320 * scale)
    assert rect.height == pytest.approx(320 * scale)


def test_full_frame_box_covers_view_when_aspects_match():
    rect = normalized_to_view((0, 0, 1, 1), (640, 480), Rect(0, 0, 1280, 960))
    assert rect == Rect(0, 0, 1280, 960)


def test_icon_rect_geometry():
    icon = icon_rect(Rect(100, 50, 40, 80))
    assert icon == Rect(x=80, y=50, width=80, height=80)


def test_invalid_frame_size_raises():
    with pytest.raises(ValueError):
        aspect_fill_transform((0, 480), Rect(0, 0, 10, 10))
