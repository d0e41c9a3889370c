import numpy as np
import pytest

from cdft_micelle.calculators.bulk_state import State
from cdft_micelle.calculators.free_energy import HelmholtzEnergyFunctional, MeanFieldContribution


SPECIES = ["water", "surfactant"]


@pytest.fixture
def ideal_gas():
    return HelmholtzEnergyFunctional(SPECIES)


@pytest.fixture
def mean_field():
    epsilon = np.array([[0.2, 0.1], [0.1, -0.2]])
    return HelmholtzEnergyFunctional(SPECIES, [MeanFieldContribution(epsilon, 1.0)])


@pytest.fixture
def ideal_bulk(ideal_gas):
    return State.new_nvt(ideal_gas, 1.0, 1.0, [0.5, 0.01])


@pytest.fixture
def mean_field_bulk(mean_field):
    return State.new_nvt(mean_field, 1.0, 1.0, [0.5, 0.02])
