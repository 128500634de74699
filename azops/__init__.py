"""Operational scripts for starting and stopping Azure virtual machines."""

__version__ = "1.0.0"
