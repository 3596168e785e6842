import pytest

from mandeltiles import PlaneRect, build_palette


@pytest.fixture(scope="session")
def palette():
    return build_palette()


@pytest.fixture
def world():
    return PlaneRect.from_bounds(-2.5, -1.5, 1.5, 1.5)
