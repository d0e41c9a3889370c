"""
Radial grids for spherical and cylindrical profiles.
"""


from .axis import Axis
