"""
cdft_micelle package

Classical density functional theory of surfactant/water micelles:
radial density profiles, excess grand potentials and the critical
micelle concentration.
"""


from .utils import get_unique_dir, ExecutionContext
from .errors import EosError, NotConvergedError, ReductionError, InvalidStateError
