"""
Budgetal - Source Package

The request-handling core of the Budgetal personal budgeting service.

DESIGN PRINCIPLES:
1. One annual budget per user and year, created on first access
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budgetal Team"
