"""Tests for the base scan, point refinement and the engine entry point."""

from __future__ import annotations

import random

import numpy as np
import pytest

from conftest import FAINT_RUST, GRAY, STRONG_RUST, uniform_image
from rustscan.models.errors import DimensionMismatchError, InvalidImageError
from rustscan.models.image_buffer import ImageBuffer
from rustscan.models.seed_point import SeedPoint
from rustscan.models.segmentation_engine import (
    BaseSegmenter,
    PointRefiner,
    SegmentationEngine,
)


# ---------- base scan ----------
def test_three_pixel_scenario(make_image) -> None:
    image = make_image([(200, 50, 10, 255), (10, 10, 10, 255), (150, 60, 40, 255)], 3, 1)

    mask = BaseSegmenter().segment(image)

    assert mask.dtype == np.uint8
    assert mask.tolist() == [1, 0, 1]


def test_alpha_is_ignored(make_image) -> None:
    image = make_image([(200, 50, 10, 0), (200, 50, 10, 255)], 2, 1)

    assert BaseSegmenter().segment(image).tolist() == [1, 1]


def test_row_major_layout(make_image) -> None:
    pixels = [GRAY] * 6
    pixels[4] = STRONG_RUST  # (x=1, y=1) in a 3x2 image
    image = make_image(pixels, 3, 2)

    mask = BaseSegmenter().segment(image)

    assert mask.shape == (6,)
    assert mask.tolist() == [0, 0, 0, 0, 1, 0]


def test_mask_length_and_values(random_image) -> None:
    mask = BaseSegmenter().segment(random_image)

    assert mask.size == random_image.width * random_image.height
    assert set(np.unique(mask).tolist()) <= {0, 1}


@pytest.mark.parametrize(
    ("width", "height", "n_samples"),
    [
        (0, 1, 0),
        (2, -1, 8),
        (2, 2, 15),
        (2, 2, 17),
    ],
)
def test_invalid_image(width, height, n_samples) -> None:
    image = ImageBuffer(width=width, height=height, samples=np.zeros(n_samples, dtype=np.uint8))

    with pytest.raises(InvalidImageError):
        BaseSegmenter().segment(image)


def test_from_rgba_rejects_rgb_array() -> None:
    with pytest.raises(InvalidImageError):
        ImageBuffer.from_rgba(np.zeros((2, 2, 3), dtype=np.uint8))


def test_caller_buffer_is_not_frozen_or_modified() -> None:
    pixels = np.full((4, 4, 4), 128, dtype=np.uint8)
    image = ImageBuffer.from_rgba(pixels)

    SegmentationEngine().analyze(image, [(1, 1)])

    assert pixels.flags.writeable
    assert not image.samples.flags.writeable
    assert np.all(pixels == 128)


# ---------- refinement ----------
def test_gray_image_stays_clear() -> None:
    image = uniform_image(5, 5, GRAY)
    engine = SegmentationEngine()

    base = engine.segment_base(image)
    refined = engine.refine(image, base, [(2, 2)])

    assert not base.any()
    assert not refined.any()


def test_relaxed_profile_picks_up_faint_pixel() -> None:
    pixels = np.empty((5, 5, 4), dtype=np.uint8)
    pixels[:] = GRAY
    pixels[2, 2] = FAINT_RUST
    image = ImageBuffer.from_rgba(pixels)
    engine = SegmentationEngine()

    base = engine.analyze(image)
    refined = engine.analyze(image, [SeedPoint(2, 2)])

    assert base[12] == 0
    assert refined[12] == 1
    assert refined.sum() == 1


def test_refinement_is_circular_not_square() -> None:
    image = uniform_image(41, 41, FAINT_RUST)

    mask = PointRefiner(radius=20).refine(image, np.zeros(41 * 41, np.uint8), [(20, 20)])
    grid = mask.reshape(41, 41)

    assert grid[20, 20] == 1
    assert grid[0, 20] == 1 and grid[20, 0] == 1 and grid[40, 20] == 1  # distance exactly 20
    assert grid[6, 6] == 1     # ~19.8
    assert grid[3, 3] == 0     # ~24.0
    assert grid[0, 0] == 0 and grid[40, 40] == 0


def test_radius_override() -> None:
    image = uniform_image(11, 11, FAINT_RUST)
    refiner = PointRefiner()

    mask = refiner.refine(image, np.zeros(121, np.uint8), [(5, 5)], radius=1)

    assert mask.reshape(11, 11)[4:7, 4:7].tolist() == [[0, 1, 0], [1, 1, 1], [0, 1, 0]]
    assert mask.sum() == 5


def test_fractional_point() -> None:
    image = uniform_image(6, 6, FAINT_RUST)

    mask = PointRefiner(radius=0.8).refine(image, np.zeros(36, np.uint8), [(2.5, 2.5)])

    # the four pixels around (2.5, 2.5) are ~0.707 away
    assert mask.reshape(6, 6)[2:4, 2:4].tolist() == [[1, 1], [1, 1]]
    assert mask.sum() == 4


@pytest.mark.parametrize("point", [(0, 0), (9, 9), (0, 9), (9.9, 0.1), (-3, 5), (11, 9)])
def test_edge_points_are_clamped(point) -> None:
    image = uniform_image(10, 10, FAINT_RUST)

    mask = PointRefiner(radius=4).refine(image, np.zeros(100, np.uint8), [point])

    assert mask.size == 100
    assert mask.sum() > 0


def test_point_far_outside_changes_nothing() -> None:
    image = uniform_image(10, 10, FAINT_RUST)

    mask = PointRefiner(radius=4).refine(image, np.zeros(100, np.uint8), [(-50, -50), (100, 3)])

    assert not mask.any()


def test_refine_never_clears_bits(random_image) -> None:
    engine = SegmentationEngine()
    base = engine.segment_base(random_image)
    preset = base.copy()
    preset[::7] = 1  # bits the classifier would not set on its own

    refined = engine.refine(random_image, preset, [(5, 5), (30, 20)])

    assert np.all(refined >= preset)


def test_refine_does_not_mutate_inputs(random_image) -> None:
    engine = SegmentationEngine()
    base = engine.segment_base(random_image)
    snapshot = base.copy()
    points = [(5, 5), (30, 20)]

    engine.refine(random_image, base, points)

    np.testing.assert_array_equal(base, snapshot)
    assert points == [(5, 5), (30, 20)]


def test_empty_points_is_noop(random_image) -> None:
    engine = SegmentationEngine()
    base = engine.segment_base(random_image)

    np.testing.assert_array_equal(engine.refine(random_image, base, []), base)


def test_dimension_mismatch(random_image) -> None:
    with pytest.raises(DimensionMismatchError):
        PointRefiner().refine(random_image, np.zeros(10, np.uint8), [(1, 1)])


def test_refine_validates_image() -> None:
    bad = ImageBuffer(width=2, height=2, samples=np.zeros(3, dtype=np.uint8))

    with pytest.raises(InvalidImageError):
        PointRefiner().refine(bad, np.zeros(4, np.uint8), [(1, 1)])


def test_points_accept_mappings_and_pairs() -> None:
    image = uniform_image(9, 9, FAINT_RUST)
    refiner = PointRefiner(radius=2)
    empty = np.zeros(81, np.uint8)

    a = refiner.refine(image, empty, [{"x": 4, "y": 4}])
    b = refiner.refine(image, empty, [(4, 4)])
    c = refiner.refine(image, empty, [SeedPoint(4.0, 4.0)])

    np.testing.assert_array_equal(a, b)
    np.testing.assert_array_equal(b, c)


# ---------- properties ----------
POINTS = [(3, 4), (20, 15), (22, 17), (39, 29), (0, 29), (10.5, 0.5)]


def test_analyze_is_deterministic(random_image) -> None:
    engine = SegmentationEngine()

    np.testing.assert_array_equal(
        engine.analyze(random_image, POINTS), engine.analyze(random_image, POINTS)
    )


def test_analyze_is_monotonic(random_image) -> None:
    engine = SegmentationEngine()

    mask0 = engine.analyze(random_image)
    mask1 = engine.analyze(random_image, POINTS)

    assert np.all(mask1 >= mask0)
    assert mask1.sum() > mask0.sum()


def test_refinement_is_idempotent(random_image) -> None:
    engine = SegmentationEngine()
    mask0 = engine.segment_base(random_image)

    once = engine.refine(random_image, mask0, POINTS)
    twice = engine.refine(random_image, once, POINTS)

    np.testing.assert_array_equal(once, twice)


def test_point_order_does_not_matter(random_image) -> None:
    engine = SegmentationEngine()
    mask0 = engine.segment_base(random_image)
    shuffled = POINTS[:]
    random.Random(5).shuffle(shuffled)

    np.testing.assert_array_equal(
        engine.refine(random_image, mask0, POINTS),
        engine.refine(random_image, mask0, shuffled),
    )
