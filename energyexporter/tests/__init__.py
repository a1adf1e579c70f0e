"""
EnergyExporter test suite.
"""
