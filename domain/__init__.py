"""
Domain layer - View-models, enums, navigation rules and the recipe catalogue.
"""

from domain import enums, recipes, routing, schemas

__all__ = ["enums", "recipes", "routing", "schemas"]
