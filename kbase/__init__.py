"""
kbase - local multi-writer knowledge base
"""

__version__ = "0.3.0"
