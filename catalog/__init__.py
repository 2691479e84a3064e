"""Fruit catalog sync worker.

Keeps a bilingual product catalog converged with its Google Sheets source.
"""

__version__ = "0.1.0"
