"""Teacher payroll calculation and salary workflow service."""

__version__ = "1.0.0"
