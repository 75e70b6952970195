"""
Routers Package
"""

from led_matrix.routers.display import router as display_router
from led_matrix.routers.images import router as images_router
from led_matrix.routers.instances import router as instances_router

__all__ = [
    "display_router",
    "images_router",
    "instances_router",
]
