"""Workforce engine package.

This package is organized by feature modules (attendance, leave, payroll)
with a thin Flask controller layer, service/repository layers and an
orchestrator that publishes domain events after each committed change.
"""

__version__ = "0.1.0"
