"""
Helmholtz energy functionals

Ideal gas plus symbolic (sympy) residual contributions.
"""


from .contributions import SymbolicContribution, MeanFieldContribution, LocalContribution
from .functional import HelmholtzEnergyFunctional
