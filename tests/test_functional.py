import numpy as np
import pytest

from cdft_micelle.calculators.free_energy import (
    HelmholtzEnergyFunctional,
    LocalContribution,
    MeanFieldContribution,
)
from cdft_micelle.generators.density_weights import ConvolverFFT
from cdft_micelle.generators.grids_properties import Axis


EPSILON = np.array([[0.2, 0.1], [0.1, -0.2]])


def test_ideal_gas_has_no_residual(ideal_gas):
    axis = Axis.new_spherical(32, 5.0)
    convolver = ConvolverFFT.plan(axis, ideal_gas.weight_functions(1.0))
    density = np.vstack([0.5 * np.ones(32), 0.01 * np.ones(32)])

    f, dfdrho = ideal_gas.functional_derivative(1.0, density, convolver)
    np.testing.assert_array_equal(f, np.zeros(32))
    np.testing.assert_array_equal(dfdrho, np.zeros((2, 32)))

    omega = ideal_gas.grand_potential_density(2.0, density, convolver)
    np.testing.assert_allclose(omega, -2.0 * 0.51 * np.ones(32))


def test_mean_field_bulk_derivatives(mean_field):
    rho = np.array([0.5, 0.02])
    temperature = 1.5
    assert mean_field.residual_helmholtz_energy_density(temperature, rho) == pytest.approx(
        0.5 * rho @ EPSILON @ rho / temperature
    )
    np.testing.assert_allclose(mean_field.residual_gradient(temperature, rho), EPSILON @ rho / temperature)
    np.testing.assert_allclose(mean_field.residual_hessian(temperature, rho), EPSILON / temperature)


def test_mean_field_functional_derivative_of_homogeneous_profile(mean_field):
    axis = Axis.new_spherical(64, 10.0)
    convolver = ConvolverFFT.plan(axis, mean_field.weight_functions(1.0))
    rho = np.array([0.5, 0.02])
    density = rho[:, None] * np.ones(64)

    f, dfdrho = mean_field.functional_derivative(1.0, density, convolver)
    np.testing.assert_allclose(f, 0.5 * rho @ EPSILON @ rho)
    np.testing.assert_allclose(dfdrho, (EPSILON @ rho)[:, None] * np.ones(64))


def test_local_contribution():
    eos = HelmholtzEnergyFunctional(["water", "surfactant"], [LocalContribution("0.5 * (rho_0 + rho_1)**2", 2)])
    rho = np.array([0.3, 0.1])
    assert eos.residual_helmholtz_energy_density(1.0, rho) == pytest.approx(0.08)
    np.testing.assert_allclose(eos.residual_gradient(1.0, rho), [0.4, 0.4])
    np.testing.assert_allclose(eos.residual_hessian(1.0, rho), np.ones((2, 2)))


def test_local_contribution_rejects_unknown_symbols():
    with pytest.raises(ValueError):
        LocalContribution("a * rho_0**2", 2)


def test_mean_field_requires_symmetric_epsilon():
    with pytest.raises(ValueError):
        MeanFieldContribution([[0.1, 0.2], [0.0, 0.1]])
    with pytest.raises(ValueError):
        MeanFieldContribution([0.1, 0.2])


def test_contribution_must_match_species():
    with pytest.raises(ValueError):
        HelmholtzEnergyFunctional(["water"], [MeanFieldContribution(EPSILON)])
