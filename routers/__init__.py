"""API routers package."""

from routers import auth, contacts, content, dashboard, products, quotes

__all__ = ["auth", "contacts", "content", "dashboard", "products", "quotes"]
