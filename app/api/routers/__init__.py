"""
app/api/routers package marker.
"""

from app.api.routers.scraping import router as scraping_router

__all__ = ["scraping_router"]
