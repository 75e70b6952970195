"""
Database-backed stores for images and device instances.

Each store wraps one SQLAlchemy session. Queries that fail roll the session
back before re-raising, so callers may retry on the same session.
"""

import hashlib
from typing import Callable, List, Optional, Tuple, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from led_matrix.db_models import Image, Instance

T = TypeVar("T")

# Listing bounds
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


class _SessionStore:
    def __init__(self, db: Session):
        self.db = db

    def _run(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError:
            self.db.rollback()
            raise


class ImageStore(_SessionStore):
    """Stored source images, deduplicated by content hash."""

    def get_binary_by_id(self, image_id: str) -> Optional[bytes]:
        """Return the encoded bytes of an image, or None if there is no such image."""
        return self._run(
            lambda: self.db.execute(
                select(Image.data).where(Image.id == image_id)
            ).scalar_one_or_none()
        )

    def get_image(self, image_id: str) -> Optional[Image]:
        return self._run(lambda: self.db.get(Image, image_id))

    def find_by_hash(self, content_hash: str) -> Optional[Image]:
        return self._run(
            lambda: self.db.execute(
                select(Image).where(Image.content_hash == content_hash)
            ).scalar_one_or_none()
        )

    def store_image(
        self,
        data: bytes,
        mime_type: str,
        original_url: Optional[str] = None,
    ) -> Tuple[str, bool]:
        """
        Store an image unless identical bytes are already stored.

        Returns:
            Tuple of (image_id, is_new)
        """
        content_hash = hashlib.sha256(data).hexdigest()

        existing = self.find_by_hash(content_hash)
        if existing:
            return str(existing.id), False

        image = Image(
            content_hash=content_hash,
            original_url=original_url,
            mime_type=mime_type,
            data=data,
        )
        self.db.add(image)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same bytes
            self.db.rollback()
            existing = self.find_by_hash(content_hash)
            if existing:
                return str(existing.id), False
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(image)
        return str(image.id), True

    def list_images(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[Image]:
        """List images newest first. Limit is clamped to [1, 100], offset to >= 0."""
        limit = min(MAX_LIST_LIMIT, max(1, int(limit)))
        offset = max(0, int(offset))
        return self._run(
            lambda: list(
                self.db.execute(
                    select(Image)
                    .order_by(Image.created_at.desc())
                    .limit(limit)
                    .offset(offset)
                ).scalars()
            )
        )


class InstanceStore(_SessionStore):
    """Registered display device endpoints."""

    def list_instances(self) -> List[Instance]:
        return self._run(
            lambda: list(
                self.db.execute(select(Instance).order_by(Instance.created_at.asc())).scalars()
            )
        )

    def get_instance(self, instance_id: str) -> Optional[Instance]:
        return self._run(lambda: self.db.get(Instance, instance_id))

    def create_instance(self, name: str, endpoint_url: str) -> Instance:
        instance = Instance(name=name, endpoint_url=endpoint_url)
        self.db.add(instance)
        self._commit()
        self.db.refresh(instance)
        return instance

    def update_instance(
        self,
        instance_id: str,
        name: str,
        endpoint_url: str,
    ) -> Optional[Instance]:
        instance = self.get_instance(instance_id)
        if not instance:
            return None

        instance.name = name
        instance.endpoint_url = endpoint_url
        self._commit()
        self.db.refresh(instance)
        return instance

    def delete_instance(self, instance_id: str) -> bool:
        instance = self.get_instance(instance_id)
        if not instance:
            return False

        self.db.delete(instance)
        self._commit()
        return True

    def _commit(self) -> None:
        self._run(self.db.commit)
