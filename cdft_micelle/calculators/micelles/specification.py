# cdft_micelle/calculators/micelles/specification.py

"""
Closure rules and initializations of micelle profiles.

ChemicalPotential
    The bulk is a fixed reservoir; the profile is grand canonical.

Size(delta_n_surfactant, pressure)
    The excess amount of surfactant is fixed. The bulk surfactant density
    follows from the surfactant balance and the bulk water density from the
    pressure via the Euler relation p = Σ ρ_i μ_i - f.
"""

from dataclasses import dataclass

import numpy as np

from cdft_micelle.calculators.bulk_state.state import State
from cdft_micelle.errors import ReductionError
from cdft_micelle.utils import to_reduced


SOLVENT = 0
SURFACTANT = 1

CHEMICAL_POTENTIAL = "chemical_potential"
SIZE = "size"


@dataclass(frozen=True)
class MicelleSpecification:
    kind: str
    delta_n_surfactant: float | None = None
    pressure: float | None = None

    def __post_init__(self):
        if self.kind not in (CHEMICAL_POTENTIAL, SIZE):
            raise ValueError(f"Unknown micelle specification '{self.kind}'.")
        if self.kind == SIZE and (self.delta_n_surfactant is None or self.pressure is None):
            raise ValueError("A size specification needs `delta_n_surfactant` and `pressure`.")

    @classmethod
    def chemical_potential(cls):
        return cls(CHEMICAL_POTENTIAL)

    @classmethod
    def size(cls, delta_n_surfactant, pressure):
        return cls(SIZE, float(delta_n_surfactant), float(pressure))

    @property
    def variable_bulk(self):
        return self.kind == SIZE

    def calculate_bulk_density(self, profile, bulk_density, z):
        """
        Bulk partial densities demanded by the specification.

        Parameters
        ----------
        profile : DFTProfile
        bulk_density : ndarray, shape (components,)
            Current bulk partial densities.
        z : ndarray, shape (components,)
            ∫ exp(-(c_i - c_i^b + V_i/T)) dr per component.
        """
        bulk_density = np.array(bulk_density, dtype=float)
        if self.kind == CHEMICAL_POTENTIAL:
            return bulk_density

        temperature = profile.temperature
        state = State.new_nvt(profile.dft, temperature, 1.0, bulk_density)
        f_bulk = state.helmholtz_energy_density()
        mu = state.chemical_potential()

        rho_s = bulk_density[SURFACTANT]
        n_s_bulk = rho_s * profile.volume()

        spec = to_reduced(self.delta_n_surfactant + n_s_bulk, z)

        # a vanishing solvent chemical potential leaves the pressure balance undetermined
        if abs(mu[SOLVENT]) < 1e-12 * temperature:
            raise ReductionError(
                f"Solvent chemical potential {mu[SOLVENT]} is too small to fix the bulk solvent density."
            )
        spec[SOLVENT] = to_reduced(self.pressure + f_bulk - rho_s * mu[SURFACTANT], mu[SOLVENT])
        return spec


@dataclass(frozen=True, eq=False)
class MicelleInitialization:
    kind: str
    peak: float | None = None
    width: float | None = None
    density: np.ndarray | None = None

    @classmethod
    def external_potential(cls, peak, width):
        if not width > 0.0:
            raise ValueError(f"The width of the initial potential must be positive (got {width}).")
        return cls("external_potential", peak=float(peak), width=float(width))

    @classmethod
    def from_density(cls, density):
        return cls("density", density=np.array(density, dtype=float))

    def potential(self, r, components):
        """Gaussian well peak * exp(-r²/(2 width²)) on the surfactant, zero elsewhere."""
        potential = np.zeros((components, len(r)))
        if self.kind == "external_potential":
            potential[SURFACTANT] = self.peak * np.exp(-0.5 * r**2 / self.width**2)
        return potential
