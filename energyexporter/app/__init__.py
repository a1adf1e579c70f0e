"""
EnergyExporter Application

Command line entry point.
"""

from energyexporter.app.cli import main

__all__ = [
    "main",
]
