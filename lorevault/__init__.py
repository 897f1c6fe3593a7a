"""
Lorevault - authorization and query boundary for a multi-tenant content API.
"""

__version__ = "0.1.0"
