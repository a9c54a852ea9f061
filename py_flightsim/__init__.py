"""
py-flightsim: fractal terrain generation and collision-gated flight.
"""

__version__ = "0.1.0"
