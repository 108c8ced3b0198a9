"""
Multi-tenant document store HTTP front end
"""

__version__ = "1.0.0"
