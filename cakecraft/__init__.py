"""
CakeCraft storefront backend.

Custom cake pricing, pricing document management and order checkout.
"""

__version__ = "1.4.0"
