"""To Concentrate - a three-stage focus timer daemon with a local control CLI."""

__version__ = "0.1.0"
