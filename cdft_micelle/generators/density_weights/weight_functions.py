# cdft_micelle/generators/density_weights/weight_functions.py

"""
Weight function descriptors

Radially symmetric kernels used to build weighted densities. Every kernel
is described by its three-dimensional Fourier transform; for cylindrical
grids the same transform is used in the plane perpendicular to the axis
(projection-slice), so one descriptor serves both geometries.
"""

from dataclasses import dataclass

import numpy as np


WEIGHT_FUNCTION_SHAPES = ("delta", "gaussian", "heaviside")


@dataclass(frozen=True)
class WeightFunction:
    """
    One kernel per component.

    Parameters
    ----------
    shape : str
        "delta"     : w(r) = δ(r)                        -> ŵ(k) = 1
        "gaussian"  : normalised Gaussian, std `width`  -> ŵ(k) = exp(-k²w²/2)
        "heaviside" : Θ(width - r)                       -> ŵ(k) = 4π (sin kR - kR cos kR) / k³
    widths : tuple of float
        Kernel length per component (ignored for "delta").
    prefactors : tuple of float
        Multiplies the kernel of every component.
    """

    shape: str
    widths: tuple
    prefactors: tuple

    def __post_init__(self):
        if self.shape not in WEIGHT_FUNCTION_SHAPES:
            raise ValueError(
                f"Unknown weight function shape '{self.shape}'. "
                f"Available shapes: {list(WEIGHT_FUNCTION_SHAPES)}"
            )
        if len(self.widths) != len(self.prefactors):
            raise ValueError("widths and prefactors must have one entry per component.")

    @classmethod
    def new(cls, shape, widths, prefactors=None):
        widths = tuple(float(w) for w in np.atleast_1d(widths))
        if prefactors is None:
            prefactors = (1.0,) * len(widths)
        prefactors = tuple(float(p) for p in np.atleast_1d(prefactors))
        return cls(shape, widths, prefactors)

    def fourier_transform(self, k):
        """ŵ(k) per component, shape (components, len(k))."""
        k = np.atleast_1d(np.asarray(k, dtype=float))
        rows = []
        for width, prefactor in zip(self.widths, self.prefactors):
            if self.shape == "delta":
                wk = np.ones_like(k)
            elif self.shape == "gaussian":
                wk = np.exp(-0.5 * (k * width) ** 2)
            else:
                x = k * width
                small = np.abs(x) < 1e-3
                with np.errstate(divide="ignore", invalid="ignore"):
                    exact = 4.0 * np.pi * (np.sin(x) - x * np.cos(x)) / k**3
                series = 4.0 / 3.0 * np.pi * width**3 * (1.0 - x**2 / 10.0)
                wk = np.where(small, series, exact)
            rows.append(prefactor * wk)
        return np.array(rows)

    def bulk_factor(self):
        """ŵ(0) per component, i.e. the integral of the kernel."""
        return self.fourier_transform(np.zeros(1))[:, 0]


@dataclass(frozen=True)
class WeightFunctionInfo:
    """
    Weight functions of one functional contribution.

    The weighted densities of the contribution are ordered as
    n[a * len(component_index) + i] = (w_a,i * rho_component_index[i]).
    """

    component_index: tuple
    weight_functions: tuple

    @property
    def n_weighted_densities(self):
        return len(self.weight_functions) * len(self.component_index)

    def fourier_transform(self, k):
        return np.concatenate([w.fourier_transform(k) for w in self.weight_functions], axis=0)

    def bulk_factors(self):
        return np.concatenate([w.bulk_factor() for w in self.weight_functions])
