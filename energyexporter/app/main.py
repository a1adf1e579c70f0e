"""
EnergyExporter Main Entry Point

This module provides the main entry point for running EnergyExporter.
"""

import sys

from energyexporter.app.cli import main


if __name__ == "__main__":
    sys.exit(main())
