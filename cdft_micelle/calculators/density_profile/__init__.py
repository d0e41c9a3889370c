"""
Density profiles and the iteration schedule of the Euler-Lagrange equation.
"""


from .solver import DFTSolver, PicardIteration, AndersonMixing, Newton
from .profile import DFTProfile
