"""Self-sovereign author tooling for OpenMods."""

__version__ = "0.1.0"
