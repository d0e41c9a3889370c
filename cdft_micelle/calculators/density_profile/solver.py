# cdft_micelle/calculators/density_profile/solver.py

"""
Iteration schedule for the self-consistent Euler-Lagrange equation.

A DFTSolver is an ordered list of stages. Every stage starts from the
result of the previous one and iterates until its own tolerance is met or
its budget is exhausted; the outcome of the last stage decides convergence.

The unknowns are the density profile and, for specifications with a
variable bulk, the bulk partial densities.
"""

from dataclasses import dataclass, field

import numpy as np
from scipy.optimize import newton_krylov, NoConvergence

from cdft_micelle.errors import ReductionError


# -----------------------------
# Stages
# -----------------------------
@dataclass
class PicardIteration:
    max_iter: int = 500
    tol: float = 1e-11
    damping_constant: float = 0.15

    name = "picard"

    def run(self, variables, debug=False):
        x = variables.pack()
        res = variables.residual(x)
        if not np.all(np.isfinite(res)):
            raise ReductionError("Picard iteration started from a non-finite residual.")
        damping = self.damping_constant

        for iteration in range(self.max_iter + 1):
            norm = variables.norm(res)
            if debug:
                _print_row(self.name, iteration, norm, damping)
            if norm < self.tol:
                return x, True
            if iteration == self.max_iter:
                break

            # backtrack until the residual is finite again
            while True:
                x_trial = np.maximum(x + damping * res, 0.0)
                res_trial = variables.residual(x_trial)
                if np.all(np.isfinite(res_trial)):
                    break
                damping *= 0.5
                if damping < 1e-8:
                    raise ReductionError("Picard iteration cannot find a step with a finite residual.")

            x, res = x_trial, res_trial

        return x, False


@dataclass
class AndersonMixing:
    max_iter: int = 150
    tol: float = 1e-11
    damping_constant: float = 0.15
    mmax: int = 100

    name = "anderson"

    def run(self, variables, debug=False):
        x = variables.pack()
        x_history = []
        res_history = []

        for iteration in range(self.max_iter + 1):
            res = variables.residual(x)
            if not np.all(np.isfinite(res)):
                raise ReductionError("Anderson mixing produced a non-finite residual.")

            norm = variables.norm(res)
            if debug:
                _print_row(self.name, iteration, norm, self.damping_constant)
            if norm < self.tol:
                return x, True
            if iteration == self.max_iter:
                break

            x_history.append(x)
            res_history.append(res)
            if len(res_history) > self.mmax + 1:
                x_history.pop(0)
                res_history.pop(0)

            if len(res_history) == 1:
                x_new = x + self.damping_constant * res
            else:
                dx = np.diff(np.array(x_history), axis=0).T
                dres = np.diff(np.array(res_history), axis=0).T
                gamma = np.linalg.lstsq(dres, res, rcond=None)[0]
                x_new = x + self.damping_constant * res - (dx + self.damping_constant * dres) @ gamma

            x = np.maximum(x_new, 0.0)

        return x, False


@dataclass
class Newton:
    max_iter: int = 50
    tol: float = 1e-11

    name = "newton"

    def run(self, variables, debug=False):
        x0 = variables.pack()
        try:
            x = newton_krylov(variables.residual, x0, f_tol=self.tol, maxiter=self.max_iter, verbose=debug)
        except NoConvergence as exc:
            x = np.asarray(exc.args[0], dtype=float)

        if not np.all(np.isfinite(x)):
            raise ReductionError("Newton iteration produced a non-finite iterate.")
        x = np.maximum(x, 0.0)
        norm = variables.norm(variables.residual(x))
        if debug:
            _print_row(self.name, self.max_iter, norm, 1.0)
        return x, bool(norm < self.tol)


def _print_row(stage, iteration, norm, damping):
    print(f"{stage:<10} | {iteration:>5} | {norm:>14.6e} | {damping:>8.4f}")


# -----------------------------
# Solver
# -----------------------------
@dataclass
class DFTSolver:
    stages: list = field(default_factory=list)
    verbose: bool = False

    @classmethod
    def default(cls):
        return cls(
            stages=[
                PicardIteration(max_iter=50, tol=1e-5),
                AndersonMixing(max_iter=250, tol=1e-10),
            ]
        )

    def picard_iteration(self, max_iter=500, tol=1e-11, damping_constant=0.15):
        self.stages.append(PicardIteration(max_iter, tol, damping_constant))
        return self

    def anderson_mixing(self, max_iter=150, tol=1e-11, damping_constant=0.15, mmax=100):
        self.stages.append(AndersonMixing(max_iter, tol, damping_constant, mmax))
        return self

    def newton(self, max_iter=50, tol=1e-11):
        self.stages.append(Newton(max_iter, tol))
        return self

    def solve(self, profile, debug=False):
        """
        Iterate the profile to self-consistency.

        Returns
        -------
        converged : bool
        density : ndarray
        bulk_density : ndarray
        """
        if not self.stages:
            raise ValueError("A DFTSolver needs at least one stage.")

        debug = debug or self.verbose
        variables = _ProfileVariables(profile)

        if debug:
            print(f"{'stage':<10} | {'iter':>5} | {'residual':>14} | {'damping':>8}")
            print("-" * 46)

        x = variables.pack()
        converged = False
        for stage in self.stages:
            variables.set(x)
            x, converged = stage.run(variables, debug=debug)

        density, bulk_density = variables.unpack(x)

        if debug:
            if converged:
                print("✅ Density profile converged.")
            else:
                print("⚠️ Density profile did not converge.")

        return converged, density, bulk_density


class _ProfileVariables:
    """Flat view of the unknowns of a density profile."""

    def __init__(self, profile):
        self.profile = profile
        self.shape = profile.density.shape
        self.variable_bulk = getattr(profile.specification, "variable_bulk", False)
        self._density = profile.density.copy()
        self._bulk_density = profile.bulk.partial_density.copy()

    def set(self, x):
        self._density, self._bulk_density = self.unpack(x)

    def pack(self):
        if self.variable_bulk:
            return np.concatenate([self._density.ravel(), self._bulk_density])
        return self._density.ravel().copy()

    def unpack(self, x):
        x = np.asarray(x, dtype=float)
        size = int(np.prod(self.shape))
        density = x[:size].reshape(self.shape)
        if self.variable_bulk:
            return density, x[size:].copy()
        return density, self._bulk_density.copy()

    def residual(self, x):
        density, bulk_density = self.unpack(x)
        res_rho, res_bulk = self.profile.euler_lagrange_equation(density, bulk_density)
        if self.variable_bulk:
            return np.concatenate([res_rho.ravel(), res_bulk])
        return res_rho.ravel()

    def norm(self, res):
        return float(np.sqrt(np.sum(res**2) / res.size))
