"""
Customer and admin notifications.
"""

from .mailer import OrderNotifier

__all__ = ["OrderNotifier"]
