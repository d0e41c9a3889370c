"""
Engines subpackage

Configuration-driven executors that build the system from an input
dictionary, run the calculation and export the files to the scratch directory.
"""


from .micelle import micelle_executor
