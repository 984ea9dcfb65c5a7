"""API routers."""
from .dashboard import router as dashboard_router

__all__ = ["dashboard_router"]
