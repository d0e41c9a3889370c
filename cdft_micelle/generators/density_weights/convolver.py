# cdft_micelle/generators/density_weights/convolver.py

"""
Weighted-density convolutions on radial grids.

Spherical grids
    3-D convolution of radially symmetric fields via the discrete sine
    transform of r·f(r) (DST-II / inverse DST-II on the cell centres).
    sin(kr)/r is an eigenfunction of every radial kernel with eigenvalue ŵ(k).

Cylindrical grids
    2-D convolution via a Fourier-Bessel expansion in J0(α_m r / R) with
    α_m the zeros of J0.

Both transforms assume fields vanishing at the domain edge, so the value at
the last grid point is subtracted before transforming and added back
multiplied by ŵ(0).
"""

import numpy as np
from scipy.fft import dst, idst
from scipy.special import j0, j1, jn_zeros


# -----------------------------
# Radial transforms
# -----------------------------
class _SphericalTransform:
    def __init__(self, axis):
        self.r = axis.grid
        self.k = np.pi * (np.arange(axis.points) + 1) / axis.width

    def forward(self, f):
        return dst(self.r * f, type=2, axis=-1)

    def inverse(self, fk):
        return idst(fk, type=2, axis=-1) / self.r


class _PolarTransform:
    def __init__(self, axis):
        r = axis.grid
        zeros = jn_zeros(0, axis.points)
        self.k = zeros / axis.width
        self._j0 = j0(np.outer(self.k, r))

        # annulus weights / 2π = r dr (exact for every cell)
        weights = axis.integration_weights / (2.0 * np.pi)
        norm = 2.0 / (axis.width**2 * j1(zeros) ** 2)
        self._forward = norm[:, None] * self._j0 * weights[None, :]

    def forward(self, f):
        return f @ self._forward.T

    def inverse(self, fk):
        return fk @ self._j0


# -----------------------------
# Convolvers
# -----------------------------
class _Convolver:
    """Common bookkeeping of weighted densities and functional derivatives."""

    def __init__(self, weight_functions):
        self.weight_functions = list(weight_functions)

    def _convolve(self, index, field):
        raise NotImplementedError

    def weighted_densities(self, density):
        """
        Weighted densities of every contribution.

        Parameters
        ----------
        density : ndarray, shape (components, points)

        Returns
        -------
        list of ndarray, one (n_weighted_densities, points) array per contribution
        """
        density = np.asarray(density, dtype=float)
        result = []
        for index, info in enumerate(self.weight_functions):
            rho = density[list(info.component_index)]
            rho = np.tile(rho, (len(info.weight_functions), 1))
            result.append(self._convolve(index, rho))
        return result

    def functional_derivative(self, partial_derivatives, n_components):
        """
        Adjoint operation: map ∂Φ/∂n of every contribution back onto the
        components, δF/δρ_i = Σ_a (w_a,i * ∂Φ/∂n_a,i).
        """
        dfdrho = None
        for index, (info, dphi) in enumerate(zip(self.weight_functions, partial_derivatives)):
            conv = self._convolve(index, np.asarray(dphi, dtype=float))
            if dfdrho is None:
                dfdrho = np.zeros((n_components,) + conv.shape[1:])
            n = len(info.component_index)
            components = list(info.component_index)
            for a in range(len(info.weight_functions)):
                dfdrho[components] += conv[a * n:(a + 1) * n]
        return dfdrho


class ConvolverFFT(_Convolver):
    def __init__(self, axis, weight_functions, transform):
        super().__init__(weight_functions)
        self.axis = axis
        self._transform = transform
        self._kernels = [info.fourier_transform(transform.k) for info in self.weight_functions]
        self._bulk_factors = [info.bulk_factors() for info in self.weight_functions]

    @classmethod
    def plan(cls, grid, weight_functions):
        """
        Plan the convolutions of all weight functions on a radial axis.

        Parameters
        ----------
        grid : Axis
            Spherical or cylindrical axis.
        weight_functions : list of WeightFunctionInfo
            One entry per functional contribution.
        """
        if grid.geometry == "spherical":
            transform = _SphericalTransform(grid)
        elif grid.geometry == "cylindrical":
            transform = _PolarTransform(grid)
        else:
            raise ValueError(f"No convolver available for geometry '{grid.geometry}'.")
        return cls(grid, weight_functions, transform)

    def _convolve(self, index, field):
        boundary = field[:, -1:]
        deviation = field - boundary
        conv = self._transform.inverse(self._transform.forward(deviation) * self._kernels[index])
        return conv + boundary * self._bulk_factors[index][:, None]


class BulkConvolver(_Convolver):
    """Convolutions for homogeneous densities: n = ŵ(0) ρ."""

    def __init__(self, weight_functions):
        super().__init__(weight_functions)
        self._bulk_factors = [info.bulk_factors() for info in self.weight_functions]

    def _convolve(self, index, field):
        return field * self._bulk_factors[index][:, None]
