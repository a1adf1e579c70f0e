"""
EnergyExporter Models
"""
