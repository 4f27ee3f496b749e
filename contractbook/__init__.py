"""
contractbook: balances, contracts and job settlement for a contracting platform.
"""

__version__ = "0.1.0"
