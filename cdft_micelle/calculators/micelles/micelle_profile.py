# cdft_micelle/calculators/micelles/micelle_profile.py

"""
Micelle profiles and the critical micelle concentration.

A MicelleProfile is a radial DFT profile of a water (0) / surfactant (1)
mixture together with its excess grand potential ΔΩ and excess amounts
ΔN_i. The critical micelle concentration is the bulk surfactant mole
fraction at which a micelle in contact with the bulk has ΔΩ = 0; it is
located by a Newton iteration on the mole fraction at fixed temperature
and pressure.
"""

from dataclasses import dataclass

import numpy as np

from cdft_micelle.calculators.bulk_state.state import build_state
from cdft_micelle.calculators.density_profile.profile import DFTProfile
from cdft_micelle.calculators.micelles.specification import (
    MicelleSpecification,
    SOLVENT,
    SURFACTANT,
)
from cdft_micelle.errors import NotConvergedError
from cdft_micelle.generators.density_weights.convolver import ConvolverFFT
from cdft_micelle.generators.grids_properties.axis import Axis
from cdft_micelle.utils import to_reduced


MAX_ITER_MICELLE = 50
TOL_MICELLE = 1e-5


@dataclass
class SolverOptions:
    max_iter: int | None = None
    tol: float | None = None
    verbose: bool = False


class MicelleProfile:
    def __init__(self, profile, delta_omega=None, delta_n=None):
        self.profile = profile
        self.delta_omega = delta_omega
        self.delta_n = delta_n

    # -------------------------
    # Construction
    # -------------------------
    @classmethod
    def _new(cls, axis, bulk, initialization, specification):
        dft = bulk.eos
        if dft.components != 2:
            raise ValueError(
                f"Micelle profiles need a binary solvent/surfactant mixture, got {dft.components} components."
            )

        external_potential = initialization.potential(axis.grid, dft.components)
        density = initialization.density if initialization.kind == "density" else None

        convolver = ConvolverFFT.plan(axis, dft.weight_functions(bulk.temperature))
        profile = DFTProfile(
            axis,
            convolver,
            bulk,
            external_potential=external_potential,
            density=density,
            specification=specification,
        )
        return cls(profile)

    @classmethod
    def new_spherical(cls, bulk, n_grid, width, initialization, specification):
        return cls._new(Axis.new_spherical(n_grid, width), bulk, initialization, specification)

    @classmethod
    def new_cylindrical(cls, bulk, n_grid, width, initialization, specification):
        return cls._new(Axis.new_polar(n_grid, width), bulk, initialization, specification)

    def __repr__(self):
        return (
            f"MicelleProfile(geometry={self.profile.grid.geometry!r}, "
            f"delta_omega={self.delta_omega}, delta_n={self.delta_n})"
        )

    # -------------------------
    # Accessors
    # -------------------------
    @property
    def specification(self):
        return self.profile.specification

    @property
    def bulk(self):
        return self.profile.bulk

    @property
    def temperature(self):
        return self.profile.temperature

    @property
    def r(self):
        return self.profile.r

    @property
    def density(self):
        return self.profile.density

    @density.setter
    def density(self, value):
        self.profile.density = value
        self._invalidate()

    @property
    def external_potential(self):
        return self.profile.external_potential

    def volume(self):
        return self.profile.volume()

    def _invalidate(self):
        self.delta_omega = None
        self.delta_n = None

    # -------------------------
    # Solving
    # -------------------------
    def solve_inplace(self, solver=None, debug=False):
        self._invalidate()
        self.profile.solve(solver, debug=debug)
        self.post_process()

    def solve(self, solver=None):
        self.solve_inplace(solver)
        return self

    def solve_micelle_inplace(self, solver1=None, solver2=None, debug=False):
        """
        Solve in the initial potential, then release the micelle.

        The first stage always prints its progress. Afterwards the external
        potential is zero and the profile is solved again from the confined
        result.
        """
        self._invalidate()
        self.profile.solve(solver1, debug=True)
        self.profile.external_potential = np.zeros_like(self.profile.external_potential)
        self.profile.solve(solver2, debug=debug)
        self.post_process()

    def solve_micelle(self, solver1=None, solver2=None):
        self.solve_micelle_inplace(solver1, solver2)
        return self

    def post_process(self):
        """
        ΔΩ = ∫ (ω(r) + p) dr and ΔN_i = N_i - ρ_i^b V.
        """
        bulk = self.profile.bulk
        omega = self.profile.grand_potential_density()
        self.delta_omega = self.profile.integrate(omega + bulk.pressure())
        self.delta_n = self.profile.moles() - bulk.partial_density * self.profile.volume()

    # -------------------------
    # Cloning
    # -------------------------
    def copy(self):
        delta_n = None if self.delta_n is None else np.array(self.delta_n)
        return MicelleProfile(self.profile.copy(), self.delta_omega, delta_n)

    def update_specification(self, specification):
        """Copy of the profile with a different specification and no derived results."""
        micelle = self.copy()
        micelle.profile.specification = specification
        micelle._invalidate()
        return micelle

    # -------------------------
    # Critical micelle concentration
    # -------------------------
    def critical_micelle(self, solver=None, options=None):
        """
        Newton iteration on the bulk surfactant mole fraction until ΔΩ = 0.

        The micelle is kept in contact with a bulk reservoir at constant
        temperature and pressure. After every update of the bulk the density
        profile is shifted so that its boundary matches the new bulk, and
        solved again.

        Raises
        ------
        NotConvergedError
            If |ΔΩ| < tol·T is not reached within `max_iter` iterations.
        """
        options = SolverOptions() if options is None else options
        max_iter = MAX_ITER_MICELLE if options.max_iter is None else options.max_iter
        tol = TOL_MICELLE if options.tol is None else options.tol

        specification = MicelleSpecification.chemical_potential()
        if self.profile.specification != specification:
            self.profile.specification = specification
            self._invalidate()
        if self.delta_omega is None:
            self.solve_inplace(solver, debug=options.verbose)

        temperature = self.temperature
        pressure = self.bulk.pressure()
        for iteration in range(max_iter):
            bulk = self.profile.bulk
            x = bulk.molefracs[SURFACTANT]

            if options.verbose:
                print(f"[cmc] iteration {iteration:>3} | x = {x:.10e} | delta_omega = {self.delta_omega:.6e}")

            if abs(self.delta_omega) < tol * temperature:
                if options.verbose:
                    print(f"✅ Critical micelle concentration found: x = {x:.10e}")
                return self

            volume = bulk.volume
            x = newton_step_molefraction(
                self.delta_omega,
                self.delta_n,
                bulk.dp_dni() * volume,
                bulk.dmu_dni() * volume,
                x,
                bulk.density,
            )

            bulk = build_state(
                bulk.eos,
                temperature,
                np.array([1.0 - x, x]),
                pressure=pressure,
                density_initialization="liquid",
            )
            self.profile.bulk = bulk
            self.profile.density = np.maximum(shift_density_profile(self.density, bulk.partial_density), 0.0)
            self.solve_inplace(solver, debug=options.verbose)

        if options.verbose:
            print(f"⚠️ Critical micelle search stopped after {max_iter} iterations.")
        raise NotConvergedError("MicelleProfile.critical_micelle")


def newton_step_molefraction(delta_omega, delta_n, dp_drho, dmu_drho, molefraction, density):
    """
    Newton update of the surfactant mole fraction x for ΔΩ(x) = 0.

    dΔΩ/dx at constant T and p follows from the Gibbs adsorption equation
    dΔΩ = -Σ_i ΔN_i dμ_i, with the bulk density changing along the isobar.

    Parameters
    ----------
    delta_omega : float
    delta_n : array_like, shape (2,)
    dp_drho : array_like, shape (2,)
        ∂p/∂ρ_i of the bulk.
    dmu_drho : array_like, shape (2, 2)
        ∂μ_i/∂ρ_j of the bulk.
    molefraction : float
        Current surfactant mole fraction.
    density : float
        Total bulk density.
    """
    dp_drho = np.asarray(dp_drho, dtype=float)
    dmu_drho = np.asarray(dmu_drho, dtype=float)
    dn0, dn1 = delta_n[SOLVENT], delta_n[SURFACTANT]
    dp0, dp1 = dp_drho[SOLVENT], dp_drho[SURFACTANT]
    x = molefraction

    p_term = to_reduced(dp1 - dp0, dp1 * x + dp0 * (1.0 - x))
    a = dn1 * dmu_drho[1, 1] + dn0 * dmu_drho[1, 0]
    b = dn1 * dmu_drho[0, 1] + dn0 * dmu_drho[0, 0]
    domega_dx = -(((a - b) * x + b) * p_term + a - b) * density

    return x - to_reduced(delta_omega, domega_dx)


def shift_density_profile(density, partial_density):
    """Add a constant to every component so that its last grid value equals `partial_density`."""
    density = np.asarray(density, dtype=float)
    shift = np.asarray(partial_density, dtype=float) - density[:, -1]
    return density + shift[:, None]
