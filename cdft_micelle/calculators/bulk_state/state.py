# cdft_micelle/calculators/bulk_state/state.py

"""
Homogeneous bulk states of a Helmholtz energy functional.

f/kT = Σ_i ρ_i (ln ρ_i - 1) + f_res(ρ)/kT

All returned quantities are in energy (or energy per volume) units.
"""

import numpy as np
from scipy.optimize import brentq
from scipy.special import xlogy

from cdft_micelle.errors import InvalidStateError


class State:
    """
    Homogeneous state at fixed temperature, volume and moles.

    States are never mutated; a different bulk is a new State.
    """

    def __init__(self, eos, temperature, volume, moles):
        moles = np.atleast_1d(np.asarray(moles, dtype=float))

        if moles.shape != (eos.components,):
            raise InvalidStateError(
                f"Expected {eos.components} mole numbers, got shape {moles.shape}."
            )
        if not np.all(np.isfinite(moles)) or np.any(moles < 0.0):
            raise InvalidStateError(f"Mole numbers must be finite and non-negative (got {moles}).")
        if not np.isfinite(temperature) or temperature <= 0.0:
            raise InvalidStateError(f"Temperature must be positive (got {temperature}).")
        if not np.isfinite(volume) or volume <= 0.0:
            raise InvalidStateError(f"Volume must be positive (got {volume}).")

        self.eos = eos
        self.temperature = float(temperature)
        self.volume = float(volume)
        self.moles = moles

        self.total_moles = float(np.sum(moles))
        if self.total_moles <= 0.0:
            raise InvalidStateError("A state needs a positive total amount of substance.")

        self.partial_density = moles / self.volume
        self.density = self.total_moles / self.volume
        self.molefracs = moles / self.total_moles

    @classmethod
    def new_nvt(cls, eos, temperature, volume, moles):
        return cls(eos, temperature, volume, moles)

    def __repr__(self):
        return (
            f"State(T={self.temperature:.6g}, rho={self.partial_density}, "
            f"p={self.pressure():.6g})"
        )

    # -------------------------
    # Residual (kT units)
    # -------------------------
    def _f_res(self):
        return self.eos.residual_helmholtz_energy_density(self.temperature, self.partial_density)

    def _gradient(self):
        return self.eos.residual_gradient(self.temperature, self.partial_density)

    def _hessian(self):
        return self.eos.residual_hessian(self.temperature, self.partial_density)

    # -------------------------
    # Thermodynamic properties
    # -------------------------
    def helmholtz_energy_density(self):
        rho = self.partial_density
        ideal = np.sum(xlogy(rho, rho) - rho)
        return self.temperature * (ideal + self._f_res())

    def helmholtz_energy(self):
        return self.helmholtz_energy_density() * self.volume

    def chemical_potential(self):
        with np.errstate(divide="ignore"):
            ideal = np.log(self.partial_density)
        return self.temperature * (ideal + self._gradient())

    def pressure(self):
        rho = self.partial_density
        return self.temperature * (np.sum(rho) + rho @ self._gradient() - self._f_res())

    def dp_drho(self):
        return self.temperature * (1.0 + self.partial_density @ self._hessian())

    def dmu_drho(self):
        with np.errstate(divide="ignore"):
            ideal = np.diag(1.0 / self.partial_density)
        return self.temperature * (ideal + self._hessian())

    def dp_dni(self):
        """∂p/∂N_i at constant T and V."""
        return self.dp_drho() / self.volume

    def dmu_dni(self):
        """∂μ_i/∂N_j at constant T and V."""
        return self.dmu_drho() / self.volume


# ============================================================
# State construction
# ============================================================
def _validate_composition(eos, composition):
    x = np.atleast_1d(np.asarray(composition, dtype=float))
    if x.shape != (eos.components,):
        raise InvalidStateError(f"Expected {eos.components} mole fractions, got shape {x.shape}.")
    if not np.all(np.isfinite(x)) or np.any(x < 0.0):
        raise InvalidStateError(f"Mole fractions must be finite and non-negative (got {x}).")
    if abs(np.sum(x) - 1.0) > 1e-8:
        raise InvalidStateError(f"Mole fractions must sum to one (got {x}, sum={np.sum(x)}).")
    return x


def _pressure_roots(eos, temperature, x, pressure, density_scan):
    """Mechanically stable roots of p(ρ; x) = pressure on a density scan."""

    def residual(density):
        return State(eos, temperature, 1.0, density * x).pressure() - pressure

    values = np.array([residual(d) for d in density_scan])

    roots = []
    for i in range(len(density_scan) - 1):
        if not (np.isfinite(values[i]) and np.isfinite(values[i + 1])):
            continue
        if values[i] < 0.0 <= values[i + 1]:
            if values[i + 1] == 0.0:
                roots.append(float(density_scan[i + 1]))
            else:
                roots.append(brentq(residual, density_scan[i], density_scan[i + 1], xtol=1e-14, rtol=1e-14))
    return roots


def build_state(
    eos,
    temperature,
    composition,
    pressure=None,
    volume=None,
    density_initialization="liquid",
    total_moles=1.0,
):
    """
    Build a bulk state at given temperature and composition.

    Parameters
    ----------
    eos : HelmholtzEnergyFunctional
    temperature : float
    composition : array_like
        Mole fractions (must sum to one).
    pressure : float, optional
        Target pressure. The total density solving p(ρ; x) = pressure is
        located on a logarithmic density scan and refined with brentq;
        "liquid" picks the densest, "vapor" the most dilute stable root.
    volume : float, optional
        Volume holding `total_moles` (used when no pressure is given).
    density_initialization : {"liquid", "vapor"}
    total_moles : float
    """
    x = _validate_composition(eos, composition)

    if (pressure is None) == (volume is None):
        raise ValueError("Exactly one of `pressure` or `volume` has to be given.")

    if volume is not None:
        return State(eos, temperature, volume, total_moles * x)

    if density_initialization not in ("liquid", "vapor"):
        raise ValueError(
            f"Unknown density initialization '{density_initialization}'. Expected 'liquid' or 'vapor'."
        )

    density_scan = np.logspace(-12, 4, 801)
    with np.errstate(over="ignore", invalid="ignore"):
        roots = _pressure_roots(eos, temperature, x, float(pressure), density_scan)

    if not roots:
        raise InvalidStateError(
            f"No bulk density found for T={temperature}, p={pressure}, x={x}."
        )

    density = roots[-1] if density_initialization == "liquid" else roots[0]
    return State(eos, temperature, total_moles / density, total_moles * x)
