"""Inspection core -- defect classification and validation workflow.

Turns the free-text defect list of a vehicle inspection into severities,
a 0-100 health score and an initial lifecycle status, and drives the
reviewer validation that spawns maintenance interventions.

This package has no web or database dependency; the HTTP service lives
in ``inspection_api`` and injects its own repository.
"""

__version__ = "0.1.0"
