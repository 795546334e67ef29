"""API routes package"""

from . import admin, auth, dashboard, health, hub, kyc, pages, supplier

__all__ = ["admin", "auth", "dashboard", "health", "hub", "kyc", "pages", "supplier"]
