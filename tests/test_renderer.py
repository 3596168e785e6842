from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from mandeltiles import (
    ComplexPoint,
    PixelColor,
    PlaneRect,
    RenderConfig,
    RenderedTile,
    build_palette,
    escape_field,
    escape_time,
    lerp,
    render_tile,
)


def test_two_by_two_tile(palette, world):
    tile = render_tile(world, 2, 2, 1.0, palette)
    assert (tile.width, tile.height) == (2, 2)
    assert len(tile) == 4
    for i in range(4):
        pixel = tile[i]
        assert isinstance(pixel, PixelColor)
        assert pixel.alpha == 255
        assert all(0 <= channel <= 255 for channel in pixel)
    assert tile.max_iterations == 48


def test_render_is_deterministic(palette, world):
    first = render_tile(world, 16, 12, 1.0, palette, max_iterations=64)
    second = render_tile(world, 16, 12, 1.0, palette, max_iterations=64)
    assert first.to_bytes() == second.to_bytes()


def test_byte_layout_is_row_major_argb(palette, world):
    tile = render_tile(world, 5, 3, 1.0, palette)
    data = tile.to_bytes()
    assert len(data) == 5 * 3 * 4
    assert all(alpha == 255 for alpha in data[0::4])
    assert tile.pixel(4, 2) == tile[2 * 5 + 4]
    assert tile.as_array().shape == (3, 5, 4)


def test_degenerate_rect_gives_uniform_tile(palette):
    point = ComplexPoint(-0.75, 0.1)
    tile = render_tile(PlaneRect(point, point), 8, 8, 1.0, palette)
    assert len(tile) == 64
    assert np.all(tile.pixels == tile.pixels[0])


def test_inside_points_use_last_palette_entry(palette):
    origin = ComplexPoint(0.0, 0.0)
    tile = render_tile(PlaneRect(origin, origin), 2, 2, 1.0, palette)
    assert tile[0] == palette[len(palette) - 1]


def test_fast_escape_uses_first_palette_entry(palette):
    far = ComplexPoint(10.0, 10.0)
    tile = render_tile(PlaneRect(far, far), 2, 2, 1.0, palette)
    assert tile[0] == palette[0] == PixelColor(255, 0, 7, 100)


@pytest.mark.parametrize("width, height", [(0, 4), (4, 0), (-1, 4), (4, -3)])
def test_invalid_dimensions_give_empty_tile(palette, world, width, height):
    tile = render_tile(world, width, height, 1.0, palette)
    assert tile.is_empty
    assert len(tile) == 0


def test_empty_palette_gives_empty_tile(world):
    assert render_tile(world, 4, 4, 1.0, build_palette(size=0)).is_empty


def test_non_positive_budget_gives_empty_tile(palette, world):
    assert render_tile(world, 4, 4, 1.0, palette, max_iterations=0).is_empty


def test_zoom_hint_drives_budget(palette, world):
    tile = render_tile(world, 2, 2, 2.0 ** 8, palette)
    assert tile.max_iterations == 48 * 8
    tile = render_tile(world, 2, 2, 2.0 ** 8, palette, config=RenderConfig(base_iterations=10))
    assert tile.max_iterations == 80


def test_field_matches_scalar_iterator():
    rect = PlaneRect.from_bounds(-2.0, -1.2, 0.6, 1.2)
    width, height, budget = 9, 7, 50
    field = escape_field(rect, width, height, budget)
    for y in range(height):
        for x in range(width):
            c = lerp(rect.min, rect.max, (x / width, 1.0 - y / height))
            expected = escape_time(c, budget)
            assert field.inside[y, x] == (not expected.escaped)
            assert field.iterations[y, x] == expected.iterations
            assert field.smooth[y, x] == pytest.approx(expected.value, abs=1e-9)


def test_field_values_stay_in_unit_interval():
    rng = np.random.default_rng(7)
    for _ in range(5):
        corners = rng.uniform(-3.0, 3.0, size=4)
        rect = PlaneRect.from_bounds(*corners)
        field = escape_field(rect, 12, 10, int(rng.integers(1, 200)))
        assert np.all(field.smooth >= 0.0)
        assert np.all(field.smooth <= 1.0)


def test_single_iteration_field():
    rect = PlaneRect.from_bounds(-3.0, -3.0, 3.0, 3.0)
    field = escape_field(rect, 8, 8, 1)
    assert set(np.unique(field.iterations)) <= {0, 1}
    np.testing.assert_array_equal(field.inside, field.iterations == 1)


def test_vertical_flip_convention():
    rect = PlaneRect.from_bounds(-0.1, -0.5, 0.1, 3.0)
    flipped = escape_field(rect, 4, 4, 200, flip_vertical=True)
    assert not flipped.inside[0].any()
    assert flipped.inside[-1].all()
    straight = escape_field(rect, 4, 4, 200, flip_vertical=False)
    assert straight.inside[0].all()
    assert not straight.inside[-1].any()


def test_inverted_rect_does_not_crash(palette):
    rect = PlaneRect.from_bounds(1.5, 1.5, -2.5, -1.5)
    tile = render_tile(rect, 6, 4, 1.0, palette)
    assert len(tile) == 24


def test_concurrent_renders_share_palette(palette, world):
    with ThreadPoolExecutor(max_workers=4) as executor:
        tiles = list(executor.map(lambda _: render_tile(world, 8, 8, 1.0, palette), range(4)))
    assert len({tile.to_bytes() for tile in tiles}) == 1


@pytest.mark.parametrize(
    "kwargs",
    [{"base_iterations": 0}, {"escape_radius": 2.0}, {"tile_size": 0}],
)
def test_invalid_config_is_rejected(kwargs):
    with pytest.raises(ValueError):
        RenderConfig(**kwargs)


def test_empty_tile_helper():
    tile = RenderedTile.empty()
    assert tile.is_empty
    assert tile.to_bytes() == b""


def test_palette_size_is_not_a_render_setting():
    with pytest.raises(TypeError):
        RenderConfig(palette_size=16)
