"""
flagref - find feature flag references in source code.
"""

__version__ = "0.1.0"
