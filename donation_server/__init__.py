"""
Donation line: card donations collected over SMS and touch-tone phone calls.
"""

__version__ = "0.1.0"
