# cdft_micelle/calculators/free_energy/functional.py

"""
Helmholtz energy functional = ideal gas + symbolic residual contributions.

All intrinsic quantities are returned in units of kT (reduced); the grand
potential density is returned in energy units.
"""

import numpy as np
import sympy as sp

from .contributions import TEMPERATURE


class HelmholtzEnergyFunctional:
    """
    Parameters
    ----------
    species : list of str
        Component names; index 0 is the solvent, index 1 the surfactant.
    contributions : list of SymbolicContribution
        Residual contributions. An empty list describes an ideal gas mixture.
    """

    def __init__(self, species, contributions=()):
        self.species = list(species)
        if not self.species:
            raise ValueError("At least one species is required.")

        self._contributions = list(contributions)
        for c in self._contributions:
            if max(c.info.component_index) >= len(self.species):
                raise ValueError(
                    f"Contribution '{c.name}' refers to component {max(c.info.component_index)} "
                    f"but only {len(self.species)} species are defined."
                )

        self._build_bulk_functions()

    def __repr__(self):
        return f"HelmholtzEnergyFunctional(species={self.species}, contributions={self._contributions})"

    @property
    def components(self):
        return len(self.species)

    def component_index(self):
        return np.arange(self.components)

    def contributions(self):
        return list(self._contributions)

    def weight_functions(self, temperature):
        return [c.weight_functions(temperature) for c in self._contributions]

    # ============================================================
    # Inhomogeneous quantities
    # ============================================================
    def functional_derivative(self, temperature, density, convolver):
        """
        Residual Helmholtz energy density and its functional derivative.

        Returns
        -------
        f : ndarray, shape density.shape[1:]
            Φ summed over all contributions (kT units).
        dfdrho : ndarray, shape density.shape
            δF_res/δρ_i (kT units).
        """
        density = np.asarray(density, dtype=float)
        f = np.zeros(density.shape[1:])

        if not self._contributions:
            return f, np.zeros_like(density)

        weighted_densities = convolver.weighted_densities(density)
        partial_derivatives = []
        for c, wd in zip(self._contributions, weighted_densities):
            f = f + c.helmholtz_energy_density(temperature, wd)
            partial_derivatives.append(c.partial_derivatives(temperature, wd))

        dfdrho = convolver.functional_derivative(partial_derivatives, self.components)
        return f, dfdrho

    def grand_potential_density(self, temperature, density, convolver):
        """
        Grand potential density ω(r) of a self-consistent profile.

        The Euler-Lagrange equation removes the chemical and external
        potentials: ω/kT = Φ - Σ_i ρ_i (δF_res/δρ_i + 1).
        """
        density = np.asarray(density, dtype=float)
        f, dfdrho = self.functional_derivative(temperature, density, convolver)
        omega = f - np.sum((dfdrho + 1.0) * density, axis=0)
        return omega * temperature

    # ============================================================
    # Bulk quantities (symbolic)
    # ============================================================
    def _build_bulk_functions(self):
        rho = sp.symbols(f"rho_0:{self.components}")

        f_res = sp.Integer(0)
        for c in self._contributions:
            f_res += c.expression.subs(c.bulk_substitution(rho))

        gradient = [sp.diff(f_res, r) for r in rho]
        hessian = [[sp.diff(g, r) for r in rho] for g in gradient]

        args = [TEMPERATURE] + list(rho)
        self.residual_expression = f_res
        self._f_res = sp.lambdify(args, f_res, "numpy")
        self._gradient = [sp.lambdify(args, g, "numpy") for g in gradient]
        self._hessian = [[sp.lambdify(args, h, "numpy") for h in row] for row in hessian]

    def residual_helmholtz_energy_density(self, temperature, partial_density):
        """Bulk residual Helmholtz energy density (kT units)."""
        return float(self._f_res(temperature, *partial_density))

    def residual_gradient(self, temperature, partial_density):
        """∂f_res/∂ρ_i of the bulk (kT units)."""
        return np.array([float(g(temperature, *partial_density)) for g in self._gradient])

    def residual_hessian(self, temperature, partial_density):
        """∂²f_res/∂ρ_i∂ρ_j of the bulk (kT units)."""
        return np.array(
            [[float(h(temperature, *partial_density)) for h in row] for row in self._hessian]
        )
