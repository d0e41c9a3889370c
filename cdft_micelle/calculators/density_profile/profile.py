# cdft_micelle/calculators/density_profile/profile.py

"""
Radial density profile in an external potential.

The profile owns the density field and the external potential; the bulk
state, the functional and the convolver are shared references. The
closure of the Euler-Lagrange equation (which bulk the profile is in
contact with) is delegated to a pluggable specification.
"""

import numpy as np

from cdft_micelle.calculators.bulk_state.state import State
from cdft_micelle.calculators.density_profile.solver import DFTSolver
from cdft_micelle.errors import NotConvergedError
from cdft_micelle.generators.density_weights.convolver import BulkConvolver
from cdft_micelle.utils import safe_exp


class DFTProfile:
    """
    Parameters
    ----------
    grid : Axis
    convolver : ConvolverFFT
        Planned for the weight functions of `bulk.eos`.
    bulk : State
        Reference bulk state; `bulk.eos` is the Helmholtz energy functional.
    external_potential : ndarray, shape (components, points), optional
        Energy units. Defaults to zero.
    density : ndarray, shape (components, points), optional
        Initial density. Defaults to ρ_b exp(-V/T).
    specification : object, optional
        Provides `calculate_bulk_density(profile, bulk_density, z)`.
        Without one, the bulk is fixed.
    """

    def __init__(self, grid, convolver, bulk, external_potential=None, density=None, specification=None):
        self.grid = grid
        self.convolver = convolver
        self.bulk = bulk
        self.specification = specification
        self._bulk_convolver = BulkConvolver(convolver.weight_functions)

        self._shape = (bulk.eos.components, grid.points)

        if external_potential is None:
            external_potential = np.zeros(self._shape)
        self.external_potential = external_potential

        if density is None:
            density = bulk.partial_density[:, None] * safe_exp(-self.external_potential / bulk.temperature)
        self.density = density

    # -------------------------
    # Fields
    # -------------------------
    @property
    def density(self):
        return self._density

    @density.setter
    def density(self, value):
        value = np.array(value, dtype=float)
        if value.shape != self._shape:
            raise ValueError(f"Density must have shape {self._shape}, got {value.shape}.")
        if not np.all(np.isfinite(value)) or np.any(value < 0.0):
            raise ValueError("Density must be finite and non-negative.")
        self._density = value

    @property
    def external_potential(self):
        return self._external_potential

    @external_potential.setter
    def external_potential(self, value):
        value = np.array(value, dtype=float)
        if value.shape != self._shape:
            raise ValueError(f"External potential must have shape {self._shape}, got {value.shape}.")
        self._external_potential = value

    @property
    def dft(self):
        return self.bulk.eos

    @property
    def temperature(self):
        return self.bulk.temperature

    @property
    def r(self):
        return self.grid.grid

    # -------------------------
    # Integrals
    # -------------------------
    def volume(self):
        return self.grid.volume()

    def integrate(self, field):
        return self.grid.integrate(field)

    def integrate_comp(self, field):
        """Integrate every component of a (components, points) field."""
        return np.atleast_1d(self.grid.integrate(field))

    def moles(self):
        return self.integrate_comp(self.density)

    def total_moles(self):
        return float(np.sum(self.moles()))

    def grand_potential_density(self):
        return self.dft.grand_potential_density(self.temperature, self.density, self.convolver)

    def grand_potential(self):
        return self.integrate(self.grand_potential_density())

    # -------------------------
    # Euler-Lagrange equation
    # -------------------------
    def euler_lagrange_equation(self, density, bulk_density):
        """
        Residuals of ρ_i = ρ_i^b exp(-(c_i - c_i^b + V_i/T)).

        Returns
        -------
        res_rho : ndarray, shape (components, points)
            Projected minus current density.
        res_bulk : ndarray, shape (components,)
            Bulk density demanded by the specification minus `bulk_density`.
        """
        temperature = self.temperature
        density = np.asarray(density, dtype=float)
        bulk_density = np.asarray(bulk_density, dtype=float)

        _, dfdrho = self.dft.functional_derivative(temperature, density, self.convolver)
        _, dfdrho_bulk = self.dft.functional_derivative(temperature, bulk_density[:, None], self._bulk_convolver)

        with np.errstate(over="ignore", invalid="ignore"):
            exponential = np.exp(-(dfdrho - dfdrho_bulk + self.external_potential / temperature))

        z = self.integrate_comp(exponential)

        if self.specification is None:
            bulk_spec = bulk_density.copy()
        else:
            bulk_spec = np.asarray(self.specification.calculate_bulk_density(self, bulk_density, z), dtype=float)

        res_rho = bulk_density[:, None] * exponential - density
        res_bulk = bulk_spec - bulk_density
        return res_rho, res_bulk

    def solve(self, solver=None, debug=False):
        """
        Solve the Euler-Lagrange equation in place.

        Raises
        ------
        NotConvergedError
            If the last solver stage exhausts its budget.
        """
        solver = DFTSolver.default() if solver is None else solver
        converged, density, bulk_density = solver.solve(self, debug=debug)

        self.density = density
        if not converged:
            raise NotConvergedError("DFTProfile.solve")

        if not np.array_equal(bulk_density, self.bulk.partial_density):
            self.bulk = State.new_nvt(self.dft, self.temperature, 1.0, bulk_density)
        return self

    def copy(self):
        return DFTProfile(
            self.grid,
            self.convolver,
            self.bulk,
            external_potential=self.external_potential.copy(),
            density=self.density.copy(),
            specification=self.specification,
        )
