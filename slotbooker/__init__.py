"""
slotbooker - Appointment booking with providers, availability and recurring series.
"""

__version__ = "0.1.0"
