import numpy as np
import pytest

from cdft_micelle.generators.grids_properties import Axis


def test_spherical_grid_is_cell_centred():
    axis = Axis.new_spherical(10, 5.0)
    assert axis.spacing == pytest.approx(0.5)
    np.testing.assert_allclose(axis.grid, np.arange(10) * 0.5 + 0.25)
    assert axis.edges[0] == 0.0
    assert axis.edges[-1] == pytest.approx(5.0)


@pytest.mark.parametrize("factory, volume", [
    (Axis.new_spherical, 4.0 / 3.0 * np.pi * 8.0**3),
    (Axis.new_polar, np.pi * 8.0**2),
])
def test_integration_weights_sum_to_volume(factory, volume):
    axis = factory(64, 8.0)
    assert axis.volume() == pytest.approx(volume)
    assert axis.integrate(np.ones(64)) == pytest.approx(volume)


def test_integrate_per_component():
    axis = Axis.new_spherical(32, 4.0)
    field = np.vstack([np.ones(32), 2.0 * np.ones(32)])
    result = axis.integrate(field)
    np.testing.assert_allclose(result, [axis.volume(), 2.0 * axis.volume()])


def test_polar_axis_is_cylindrical():
    assert Axis.new_polar(16, 3.0).geometry == "cylindrical"


@pytest.mark.parametrize("geometry, points, width", [
    ("cartesian", 16, 1.0),
    ("spherical", 1, 1.0),
    ("spherical", 16, 0.0),
    ("spherical", 16, float("nan")),
])
def test_invalid_axis(geometry, points, width):
    with pytest.raises(ValueError):
        Axis(geometry, points, width)


def test_integrate_rejects_wrong_shape():
    axis = Axis.new_spherical(16, 2.0)
    with pytest.raises(ValueError):
        axis.integrate(np.ones(15))
