"""
PayHub - multi-provider payments backend.
"""

__version__ = "1.0.0"
