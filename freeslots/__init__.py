"""
freeslots - resolve bookable time slots from weekly availability rules.
"""

__version__ = "0.1.0"
