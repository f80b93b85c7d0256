"""
Dispatch roster engine.

Rotation-based shift assignment, schedule validation and midnight-aware
coverage reporting for dispatch centres.
"""

__version__ = "1.0.0"
