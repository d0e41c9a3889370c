# cdft_micelle/generators/grids_properties/axis.py

"""
Radial axis generator

One-dimensional, cell-centred radial grids for spherically and
cylindrically symmetric profiles. Grid points sit at the cell centres
r_k = (k + 1/2) dr, integration weights are the exact shell (sphere) or
annulus (cylinder, per unit length) volumes of every cell.
"""

from dataclasses import dataclass

import numpy as np


GEOMETRIES = ("spherical", "cylindrical")


@dataclass(frozen=True)
class Axis:
    geometry: str
    points: int
    width: float

    def __post_init__(self):
        if self.geometry not in GEOMETRIES:
            raise ValueError(
                f"Unknown geometry '{self.geometry}'. Expected one of {list(GEOMETRIES)}."
            )
        if not isinstance(self.points, (int, np.integer)) or self.points < 2:
            raise ValueError(f"An axis needs an integer number of at least 2 points (got {self.points!r}).")
        if not np.isfinite(self.width) or self.width <= 0.0:
            raise ValueError(f"The axis width must be positive and finite (got {self.width!r}).")

    @classmethod
    def new_spherical(cls, points, width):
        return cls("spherical", points, float(width))

    @classmethod
    def new_polar(cls, points, width):
        return cls("cylindrical", points, float(width))

    # -------------------------
    # Grid geometry
    # -------------------------
    @property
    def spacing(self):
        return self.width / self.points

    @property
    def edges(self):
        return np.linspace(0.0, self.width, self.points + 1)

    @property
    def grid(self):
        return (np.arange(self.points) + 0.5) * self.spacing

    @property
    def integration_weights(self):
        edges = self.edges
        if self.geometry == "spherical":
            return 4.0 / 3.0 * np.pi * (edges[1:] ** 3 - edges[:-1] ** 3)
        return np.pi * (edges[1:] ** 2 - edges[:-1] ** 2)

    def volume(self):
        if self.geometry == "spherical":
            return 4.0 / 3.0 * np.pi * self.width**3
        return np.pi * self.width**2

    def integrate(self, field):
        """
        Integrate a field over the volume element of the axis.

        The last dimension of `field` runs over the grid points, so a
        (components, points) array is integrated per component.
        """
        field = np.asarray(field, dtype=float)
        if field.shape[-1] != self.points:
            raise ValueError(
                f"Field with {field.shape[-1]} points cannot be integrated on an axis with {self.points} points."
            )
        result = np.sum(field * self.integration_weights, axis=-1)
        if np.ndim(result) == 0:
            return float(result)
        return result
