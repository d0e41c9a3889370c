import numpy as np
import pytest

from cdft_micelle.calculators.bulk_state import State, build_state
from cdft_micelle.errors import InvalidStateError


def test_partial_density_and_molefracs(mean_field):
    state = State.new_nvt(mean_field, 1.0, 2.0, [1.0, 0.04])
    np.testing.assert_allclose(state.partial_density, [0.5, 0.02])
    assert state.density == pytest.approx(0.52)
    np.testing.assert_allclose(state.molefracs, [1.0 / 1.04, 0.04 / 1.04])


def test_ideal_gas_thermodynamics(ideal_bulk):
    rho = ideal_bulk.partial_density
    assert ideal_bulk.pressure() == pytest.approx(np.sum(rho))
    np.testing.assert_allclose(ideal_bulk.chemical_potential(), np.log(rho))
    np.testing.assert_allclose(ideal_bulk.dmu_drho(), np.diag(1.0 / rho))


def test_euler_relation(mean_field_bulk):
    state = mean_field_bulk
    f = state.helmholtz_energy_density()
    assert f == pytest.approx(state.partial_density @ state.chemical_potential() - state.pressure())
    assert state.helmholtz_energy() == pytest.approx(f * state.volume)


def test_gibbs_duhem(mean_field_bulk):
    state = mean_field_bulk
    np.testing.assert_allclose(state.dp_drho(), state.partial_density @ state.dmu_drho())


def test_pressure_derivative_matches_finite_difference(mean_field):
    rho = np.array([0.5, 0.02])
    state = State.new_nvt(mean_field, 1.0, 1.0, rho)
    h = 1e-6
    for i in range(2):
        step = np.zeros(2)
        step[i] = h
        p_plus = State.new_nvt(mean_field, 1.0, 1.0, rho + step).pressure()
        p_minus = State.new_nvt(mean_field, 1.0, 1.0, rho - step).pressure()
        assert state.dp_drho()[i] == pytest.approx((p_plus - p_minus) / (2 * h), rel=1e-6)


def test_derivatives_per_mole(mean_field):
    state = State.new_nvt(mean_field, 1.0, 4.0, [2.0, 0.08])
    np.testing.assert_allclose(state.dp_dni() * state.volume, state.dp_drho())
    np.testing.assert_allclose(state.dmu_dni() * state.volume, state.dmu_drho())


def test_pressure_path_reproduces_pressure(mean_field_bulk):
    p = mean_field_bulk.pressure()
    state = build_state(mean_field_bulk.eos, 1.0, mean_field_bulk.molefracs, pressure=p)
    assert state.pressure() == pytest.approx(p, rel=1e-10)
    np.testing.assert_allclose(state.partial_density, mean_field_bulk.partial_density, rtol=1e-8)


def test_volume_path(ideal_gas):
    state = build_state(ideal_gas, 1.0, [0.9, 0.1], volume=2.0, total_moles=3.0)
    np.testing.assert_allclose(state.partial_density, [1.35, 0.15])


def test_build_state_needs_exactly_one_of_pressure_and_volume(ideal_gas):
    with pytest.raises(ValueError):
        build_state(ideal_gas, 1.0, [0.9, 0.1])
    with pytest.raises(ValueError):
        build_state(ideal_gas, 1.0, [0.9, 0.1], pressure=1.0, volume=1.0)


def test_invalid_states(ideal_gas):
    with pytest.raises(InvalidStateError):
        build_state(ideal_gas, 1.0, [0.9, 0.2], pressure=1.0)
    with pytest.raises(InvalidStateError):
        build_state(ideal_gas, 1.0, [1.1, -0.1], pressure=1.0)
    with pytest.raises(InvalidStateError):
        build_state(ideal_gas, 1.0, [0.9, 0.1], pressure=-1.0)
    with pytest.raises(InvalidStateError):
        State.new_nvt(ideal_gas, 1.0, 1.0, [0.5, -0.1])
    with pytest.raises(InvalidStateError):
        State.new_nvt(ideal_gas, -1.0, 1.0, [0.5, 0.1])
