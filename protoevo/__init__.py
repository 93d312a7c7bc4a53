"""
protoevo - evolutionary prototype learning for digit classification.

Evolves one synthetic feature row per class so that nearest-prototype
classification discriminates a labeled dataset, evaluated with a two-fold
protocol.
"""

__version__ = '0.1.0'
