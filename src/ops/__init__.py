"""
Operational utilities.
"""
