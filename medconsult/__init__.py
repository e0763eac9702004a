"""
medconsult - Doctor discovery and consultation booking.
"""

__version__ = "0.1.0"
