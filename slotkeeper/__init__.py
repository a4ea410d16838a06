"""
slotkeeper - availability computation and booking commits for a booking platform.
"""

__version__ = "0.1.0"
