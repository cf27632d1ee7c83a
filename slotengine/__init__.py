"""
slotengine - availability slot computation for service bookings.
"""

__version__ = "0.1.0"
