"""
Weight functions and the convolutions that turn densities into weighted densities.
"""


from .weight_functions import WeightFunction, WeightFunctionInfo
from .convolver import ConvolverFFT, BulkConvolver
