"""
Instance routes - display devices registered by their endpoint URL
"""

from typing import List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from led_matrix.database import with_retry
from led_matrix.dependencies import get_instance_store
from led_matrix.errors import handle_db_error
from led_matrix.models import Instance, InstanceCreate, InstanceUpdate
from led_matrix.results import Failure
from led_matrix.store import InstanceStore
from led_matrix.validation import normalize_endpoint, sanitize_string, validate_url

router = APIRouter(prefix="/instances", tags=["Instances"])


def _clean_input(name: str, endpoint_url: str) -> Tuple[str, str]:
    """Sanitize the name and validate the endpoint URL, or raise 422."""
    sanitized_name = sanitize_string(name)
    if not sanitized_name:
        raise HTTPException(status_code=422, detail="Name is required")

    url = validate_url(endpoint_url)
    if isinstance(url, Failure):
        raise HTTPException(status_code=422, detail=url.message)

    return sanitized_name, normalize_endpoint(url.value)


@router.get("", response_model=List[Instance])
async def list_instances(
    store: InstanceStore = Depends(get_instance_store),
) -> List[Instance]:
    """List all registered instances, oldest first."""
    try:
        instances = await run_in_threadpool(with_retry, store.list_instances)
    except SQLAlchemyError as e:
        raise handle_db_error(e, "listInstances")
    return [Instance.model_validate(i) for i in instances]


@router.get("/{instance_id}", response_model=Instance)
async def get_instance(
    instance_id: str,
    store: InstanceStore = Depends(get_instance_store),
) -> Instance:
    """Get a specific instance by ID."""
    try:
        instance = await run_in_threadpool(
            with_retry, lambda: store.get_instance(instance_id)
        )
    except SQLAlchemyError as e:
        raise handle_db_error(e, "getInstance")

    if not instance:
        raise HTTPException(status_code=404, detail="Instance not found")
    return Instance.model_validate(instance)


@router.post("", response_model=Instance, status_code=201)
async def create_instance(
    instance: InstanceCreate,
    store: InstanceStore = Depends(get_instance_store),
) -> Instance:
    """
    Register a new display instance.

    The name is stripped of control characters; the endpoint must be an
    http(s) URL and is stored without trailing slashes.
    """
    name, endpoint_url = _clean_input(instance.name, instance.endpoint_url)

    try:
        created = await run_in_threadpool(
            with_retry, lambda: store.create_instance(name, endpoint_url)
        )
    except SQLAlchemyError as e:
        raise handle_db_error(e, "createInstance")
    return Instance.model_validate(created)


@router.put("/{instance_id}", response_model=Instance)
async def update_instance(
    instance_id: str,
    update: InstanceUpdate,
    store: InstanceStore = Depends(get_instance_store),
) -> Instance:
    """Update an instance's name and endpoint."""
    name, endpoint_url = _clean_input(update.name, update.endpoint_url)

    try:
        updated = await run_in_threadpool(
            with_retry,
            lambda: store.update_instance(instance_id, name, endpoint_url)
        )
    except SQLAlchemyError as e:
        raise handle_db_error(e, "updateInstance")

    if not updated:
        raise HTTPException(status_code=404, detail="Instance not found")
    return Instance.model_validate(updated)


@router.delete("/{instance_id}", status_code=204)
async def delete_instance(
    instance_id: str,
    store: InstanceStore = Depends(get_instance_store),
) -> Response:
    """Delete an instance."""
    try:
        deleted = await run_in_threadpool(
            with_retry, lambda: store.delete_instance(instance_id)
        )
    except SQLAlchemyError as e:
        raise handle_db_error(e, "deleteInstance")

    if not deleted:
        raise HTTPException(status_code=404, detail="Instance not found")
    return Response(status_code=204)
