import numpy as np
import pytest

from cdft_micelle.calculators.bulk_state import State
from cdft_micelle.calculators.free_energy import HelmholtzEnergyFunctional
from cdft_micelle.calculators.micelles import (
    MicelleInitialization,
    MicelleProfile,
    MicelleSpecification,
)


def seeded(bulk, factory=MicelleProfile.new_spherical, points=128, width=15.0, peak=-2.0):
    return factory(
        bulk,
        points,
        width,
        MicelleInitialization.external_potential(peak, 2.0),
        MicelleSpecification.chemical_potential(),
    )


def test_only_binary_mixtures(ideal_gas):
    eos = HelmholtzEnergyFunctional(["water", "surfactant", "oil"])
    bulk = State.new_nvt(eos, 1.0, 1.0, [0.5, 0.01, 0.01])
    with pytest.raises(ValueError):
        seeded(bulk)


def test_grid_errors_pass_through(ideal_bulk):
    with pytest.raises(ValueError):
        seeded(ideal_bulk, points=1)


def test_unsolved_profile_has_no_results(ideal_bulk):
    micelle = seeded(ideal_bulk)
    assert micelle.delta_omega is None
    assert micelle.delta_n is None


@pytest.mark.parametrize("factory", [MicelleProfile.new_spherical, MicelleProfile.new_cylindrical])
def test_seeded_profile(ideal_bulk, factory):
    # confined solve: the model functionals hold no free-standing micelle once the potential is released
    micelle = seeded(ideal_bulk, factory).solve()

    surfactant = micelle.density[1]
    assert np.argmax(surfactant) == 0
    assert surfactant[0] > surfactant[-1]
    assert surfactant[-1] == pytest.approx(ideal_bulk.partial_density[1], rel=1e-6)
    np.testing.assert_allclose(micelle.density[0], ideal_bulk.partial_density[0], rtol=1e-10)

    assert np.isfinite(micelle.delta_omega)
    assert micelle.delta_n[1] > 0.0
    assert micelle.delta_n[0] == pytest.approx(0.0, abs=1e-8)


def test_ideal_gas_excess_grand_potential(ideal_bulk):
    micelle = seeded(ideal_bulk).solve()
    assert micelle.delta_omega == pytest.approx(-ideal_bulk.temperature * np.sum(micelle.delta_n), rel=1e-9)


def test_delta_n_definition(mean_field_bulk):
    micelle = seeded(mean_field_bulk).solve()
    expected = micelle.profile.moles() - micelle.bulk.partial_density * micelle.volume()
    np.testing.assert_allclose(micelle.delta_n, expected)


def test_solve_is_idempotent(mean_field_bulk):
    micelle = seeded(mean_field_bulk).solve()
    density = micelle.density.copy()
    delta_omega = micelle.delta_omega

    micelle.solve()
    np.testing.assert_allclose(micelle.density, density, rtol=1e-9, atol=1e-12)
    assert micelle.delta_omega == pytest.approx(delta_omega, rel=1e-6)


def test_solve_micelle_releases_the_potential(ideal_bulk, capsys):
    micelle = seeded(ideal_bulk).solve_micelle()

    np.testing.assert_array_equal(micelle.external_potential, np.zeros((2, 128)))
    np.testing.assert_allclose(micelle.density, ideal_bulk.partial_density[:, None] * np.ones(128), rtol=1e-8)
    assert micelle.delta_omega == pytest.approx(0.0, abs=1e-5)
    assert "✅" in capsys.readouterr().out


def test_update_specification_invalidates_clone(ideal_bulk):
    micelle = seeded(ideal_bulk).solve()
    size = MicelleSpecification.size(1.0, ideal_bulk.pressure())
    clone = micelle.update_specification(size)

    assert clone.specification == size
    assert clone.delta_omega is None
    assert clone.delta_n is None
    assert micelle.specification == MicelleSpecification.chemical_potential()
    assert micelle.delta_omega is not None

    clone.density = 2.0 * clone.density
    assert not np.allclose(clone.density, micelle.density)


def test_density_mutation_invalidates(ideal_bulk):
    micelle = seeded(ideal_bulk).solve()
    micelle.density = micelle.density * 1.01
    assert micelle.delta_omega is None
    assert micelle.delta_n is None


def test_copy_is_independent(ideal_bulk):
    micelle = seeded(ideal_bulk).solve()
    clone = micelle.copy()
    clone.profile.external_potential = np.zeros((2, 128))
    clone.delta_n[1] = -1.0

    assert micelle.external_potential[1, 0] == pytest.approx(-2.0 * np.exp(-0.5 * micelle.r[0] ** 2 / 4.0))
    assert micelle.delta_n[1] > 0.0
    assert clone.profile.bulk is micelle.profile.bulk


def test_from_density_initialization(ideal_bulk):
    density = ideal_bulk.partial_density[:, None] * np.ones(64)
    micelle = MicelleProfile.new_spherical(
        ideal_bulk,
        64,
        10.0,
        MicelleInitialization.from_density(density),
        MicelleSpecification.chemical_potential(),
    )
    np.testing.assert_array_equal(micelle.density, density)
    np.testing.assert_array_equal(micelle.external_potential, np.zeros((2, 64)))
