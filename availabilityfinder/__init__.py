"""
availabilityfinder - Unified free/busy aggregation across calendar providers.
"""

__version__ = "0.1.0"
