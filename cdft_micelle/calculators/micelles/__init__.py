"""
Micelle profiles and the critical micelle concentration.
"""


from .specification import MicelleSpecification, MicelleInitialization
from .micelle_profile import MicelleProfile, SolverOptions
