"""
Calculators subpackage

Free energy functionals, bulk states, density profiles and micelles.
"""
