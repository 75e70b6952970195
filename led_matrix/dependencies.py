"""
FastAPI dependencies for stores and the transmission pipeline
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from led_matrix.database import get_db
from led_matrix.pipeline import TransmissionPipeline
from led_matrix.store import ImageStore, InstanceStore


def get_image_store(db: Session = Depends(get_db)) -> ImageStore:
    return ImageStore(db)


def get_instance_store(db: Session = Depends(get_db)) -> InstanceStore:
    return InstanceStore(db)


def get_pipeline(
    image_store: ImageStore = Depends(get_image_store),
) -> TransmissionPipeline:
    """
    Provide a transmission pipeline bound to the request's image store.

    Override this dependency in tests to stub device HTTP servers.
    """
    return TransmissionPipeline(image_store=image_store)
