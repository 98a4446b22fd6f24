"""Portfolio Hub: portfolio site backend, admin console and AI import tooling."""

__version__ = "1.0.0"
