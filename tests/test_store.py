"""
Tests for the database-backed image and instance stores
"""

from datetime import datetime, timedelta, timezone

from led_matrix.db_models import Image
from led_matrix.store import ImageStore, InstanceStore


def test_store_image_deduplicates(db_session):
    store = ImageStore(db_session)

    image_id, is_new = store.store_image(b"png-bytes", "image/png", "http://x/a.png")
    again_id, again_new = store.store_image(b"png-bytes", "image/png")

    assert is_new is True
    assert again_new is False
    assert again_id == image_id


def test_get_binary_by_id(db_session):
    store = ImageStore(db_session)
    image_id, _ = store.store_image(b"\x89PNG-data", "image/png")

    assert store.get_binary_by_id(image_id) == b"\x89PNG-data"
    assert store.get_binary_by_id("missing") is None


def test_get_image_metadata(db_session):
    store = ImageStore(db_session)
    image_id, _ = store.store_image(b"jpeg", "image/jpeg", "https://cdn.example/cat.jpg")

    image = store.get_image(image_id)

    assert image.mime_type == "image/jpeg"
    assert image.original_url == "https://cdn.example/cat.jpg"
    assert len(image.content_hash) == 64


def test_list_images_newest_first_and_clamped(db_session):
    store = ImageStore(db_session)
    ids = [store.store_image(bytes([i]), "image/png")[0] for i in range(5)]

    # Spread creation times so ordering is deterministic
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for offset, image_id in enumerate(ids):
        db_session.get(Image, image_id).created_at = base + timedelta(minutes=offset)
    db_session.commit()

    listed = store.list_images()
    assert [i.id for i in listed] == list(reversed(ids))

    assert len(store.list_images(limit=0)) == 1
    assert len(store.list_images(limit=1000)) == 5
    assert [i.id for i in store.list_images(limit=2, offset=1)] == [ids[3], ids[2]]
    assert len(store.list_images(offset=-5)) == 5


def test_instance_crud(db_session):
    store = InstanceStore(db_session)

    created = store.create_instance("Kitchen", "http://kitchen.local")
    assert created.id
    assert store.get_instance(created.id).endpoint_url == "http://kitchen.local"

    updated = store.update_instance(created.id, "Kitchen Panel", "http://kitchen.local:8080")
    assert updated.name == "Kitchen Panel"
    assert updated.endpoint_url == "http://kitchen.local:8080"

    assert store.update_instance("missing", "x", "http://x") is None

    assert store.delete_instance(created.id) is True
    assert store.delete_instance(created.id) is False
    assert store.get_instance(created.id) is None


def test_list_instances_oldest_first(db_session):
    store = InstanceStore(db_session)
    first = store.create_instance("One", "http://one.local")
    second = store.create_instance("Two", "http://two.local")
    first.created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    second.created_at = datetime(2026, 1, 2, tzinfo=timezone.utc)
    db_session.commit()

    assert [i.name for i in store.list_instances()] == ["One", "Two"]
