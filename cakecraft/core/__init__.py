"""
Core modules for CakeCraft.

This package contains the price calculator and pricing document
validation.
"""
