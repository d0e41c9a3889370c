"""
Generators subpackage

Grids, weight functions, convolutions and exporters.
"""
