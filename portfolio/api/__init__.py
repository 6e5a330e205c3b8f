"""
Portfolio API Routers
FastAPI router modules for the portfolio backend.
"""
from portfolio.api import contact, content, dev, health

__all__ = [
    "contact",
    "content",
    "dev",
    "health",
]
