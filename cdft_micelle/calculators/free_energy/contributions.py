# cdft_micelle/calculators/free_energy/contributions.py

"""
Symbolic Helmholtz energy contributions.

Each contribution is a reduced Helmholtz energy density Φ(n; T) (units of kT
per volume) written as a sympy expression of weighted densities n. The
expression is lambdified once; its derivatives ∂Φ/∂n feed the functional
derivative, and substituting n = ŵ(0) ρ gives the bulk contribution.
"""

import numpy as np
import sympy as sp

from cdft_micelle.generators.density_weights.weight_functions import WeightFunction, WeightFunctionInfo


TEMPERATURE = sp.Symbol("T", positive=True)


class SymbolicContribution:
    """
    Parameters
    ----------
    name : str
    info : WeightFunctionInfo
        Temperature-independent weight functions of the contribution.
    expression : sympy.Expr
        Φ in terms of `symbols` and the temperature symbol `T`.
    symbols : sequence of sympy.Symbol
        One symbol per weighted density, ordered like `info`.
    """

    def __init__(self, name, info, expression, symbols):
        symbols = list(symbols)
        if len(symbols) != info.n_weighted_densities:
            raise ValueError(
                f"Contribution '{name}' has {len(symbols)} symbols "
                f"but {info.n_weighted_densities} weighted densities."
            )

        self.name = name
        self.info = info
        self.expression = sp.sympify(expression)
        self.symbols = symbols

        args = [TEMPERATURE] + symbols
        self._phi = sp.lambdify(args, self.expression, "numpy")
        self._dphi = [sp.lambdify(args, sp.diff(self.expression, n), "numpy") for n in symbols]

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, {self.expression})"

    def weight_functions(self, temperature):
        return self.info

    def helmholtz_energy_density(self, temperature, weighted_densities):
        shape = weighted_densities.shape[1:]
        return np.broadcast_to(self._phi(temperature, *weighted_densities), shape).astype(float)

    def partial_derivatives(self, temperature, weighted_densities):
        shape = weighted_densities.shape[1:]
        return np.array(
            [np.broadcast_to(f(temperature, *weighted_densities), shape) for f in self._dphi],
            dtype=float,
        )

    def bulk_substitution(self, partial_density_symbols):
        """Map every weighted-density symbol to ŵ(0) ρ_i."""
        factors = self.info.bulk_factors()
        n = len(self.info.component_index)
        substitution = {}
        for position, symbol in enumerate(self.symbols):
            component = self.info.component_index[position % n]
            substitution[symbol] = sp.Float(factors[position]) * partial_density_symbols[component]
        return substitution


class MeanFieldContribution(SymbolicContribution):
    """
    Mean-field pair attraction/repulsion with a Gaussian pair kernel:

        F_mf = 1/2 Σ_ij ε_ij ∫∫ ρ_i(r) ρ_j(r') w(|r - r'|)

    w is a normalised Gaussian of standard deviation `interaction_range`.
    It is written as Φ = Σ_ij ε_ij n_i n_j / (2T) with n = g * ρ and g a
    Gaussian of standard deviation `interaction_range / √2`, since g * g = w.
    """

    def __init__(self, epsilon, interaction_range=1.0):
        epsilon = np.asarray(epsilon, dtype=float)
        if epsilon.ndim != 2 or epsilon.shape[0] != epsilon.shape[1]:
            raise ValueError("epsilon must be a square matrix.")
        if not np.allclose(epsilon, epsilon.T):
            raise ValueError("epsilon must be symmetric.")

        n_species = epsilon.shape[0]
        widths = np.broadcast_to(np.asarray(interaction_range, dtype=float), (n_species,)) / np.sqrt(2.0)
        info = WeightFunctionInfo(
            component_index=tuple(range(n_species)),
            weight_functions=(WeightFunction.new("gaussian", widths),),
        )

        n = sp.symbols(f"n_0:{n_species}")
        phi = sum(
            sp.Rational(1, 2) * sp.Float(epsilon[i, j]) * n[i] * n[j]
            for i in range(n_species)
            for j in range(n_species)
        ) / TEMPERATURE

        self.epsilon = epsilon
        self.interaction_range = interaction_range
        super().__init__("mean_field", info, phi, n)


class LocalContribution(SymbolicContribution):
    """
    Local (delta weight function) contribution from a user expression.

    The expression is a string or sympy expression in `rho_0 ... rho_{N-1}`
    and `T`, e.g. "0.5 * (rho_0 + rho_1)**2" for a second-virial repulsion.
    """

    def __init__(self, expression, n_species, name="local"):
        rho = sp.symbols(f"rho_0:{n_species}")
        symbol_table = {str(s): s for s in rho}
        symbol_table["T"] = TEMPERATURE
        phi = sp.sympify(expression, locals=symbol_table)

        unknown = phi.free_symbols - set(rho) - {TEMPERATURE}
        if unknown:
            raise ValueError(f"Unknown symbols {sorted(map(str, unknown))} in local contribution '{expression}'.")

        info = WeightFunctionInfo(
            component_index=tuple(range(n_species)),
            weight_functions=(WeightFunction.new("delta", np.zeros(n_species)),),
        )
        super().__init__(name, info, phi, rho)
