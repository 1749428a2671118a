"""
Routes for the master data tables under ``/api/masters``.

Every table gets the same CRUD surface from ``crud_router``; table specific
lookups are declared below it.
"""

import inspect
import logging
from typing import Callable

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from legal_case_management.api.dependencies import get_system
from legal_case_management.models.entities import MasterStatus
from legal_case_management.models.master_data import (
    ChannelCreate,
    ChannelUpdate,
    CommunicationTemplateCreate,
    CommunicationTemplateUpdate,
    DpdBucketCreate,
    DpdBucketUpdate,
    LanguageCreate,
    LanguageUpdate,
    ProductNodeCreate,
    ProductNodeUpdate,
    SchemaConfigurationCreate,
    SchemaConfigurationUpdate,
    StateCreate,
    StateUpdate,
)
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import sanitize_search_term

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/masters")


async def _resolve(result):
    return await result if inspect.isawaitable(result) else result


def crud_router(
    path: str,
    service_for: Callable[[LegalCaseSystem], object],
    create_model: type[BaseModel],
    update_model: type[BaseModel],
) -> APIRouter:
    """Build create/list/get/update/delete routes for one master data table."""
    sub = APIRouter(prefix=path)

    @sub.post("", status_code=201)
    async def create(data: create_model, system: LegalCaseSystem = Depends(get_system)) -> dict:
        return await _resolve(service_for(system).create(data))

    @sub.get("")
    async def list_items(
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1),
        search: str | None = None,
        status: MasterStatus | None = None,
        system: LegalCaseSystem = Depends(get_system),
    ) -> dict:
        return service_for(system).list(page=page, limit=limit, search=sanitize_search_term(search), status=status)

    @sub.get("/{record_id}")
    async def get_item(record_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
        return service_for(system).get(record_id)

    @sub.put("/{record_id}")
    async def update(record_id: str, data: update_model, system: LegalCaseSystem = Depends(get_system)) -> dict:
        return await _resolve(service_for(system).update(record_id, data))

    @sub.delete("/{record_id}")
    async def delete(record_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
        return service_for(system).delete(record_id)

    return sub


# lookups that must be matched before the generic "/{record_id}" routes


@router.get("/states/code/{state_code}")
async def get_state_by_code(state_code: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.states.get_by_code(state_code)


@router.get("/dpd-buckets/for-dpd/{dpd_days}")
async def bucket_for_dpd(dpd_days: int, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return {"dpd_days": dpd_days, "bucket": system.dpd_buckets.bucket_for_dpd(dpd_days)}


@router.get("/products/tree")
async def product_tree(include_inactive: bool = False, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return {"tree": system.products.tree(include_inactive)}


@router.get("/templates/channel/{channel_id}")
async def templates_for_channel(
    channel_id: str, language_id: str | None = None, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    templates = system.templates.for_channel(channel_id, language_id)
    return {"templates": templates, "total": len(templates)}


@router.get("/events/history")
async def master_data_history(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return {"history": dict(system.master_data_listener.history)}


router.include_router(crud_router("/states", lambda s: s.states, StateCreate, StateUpdate))
router.include_router(crud_router("/dpd-buckets", lambda s: s.dpd_buckets, DpdBucketCreate, DpdBucketUpdate))
router.include_router(crud_router("/languages", lambda s: s.languages, LanguageCreate, LanguageUpdate))
router.include_router(crud_router("/channels", lambda s: s.channels, ChannelCreate, ChannelUpdate))
router.include_router(
    crud_router("/product-groups", lambda s: s.products.groups, ProductNodeCreate, ProductNodeUpdate)
)
router.include_router(
    crud_router("/product-types", lambda s: s.products.types, ProductNodeCreate, ProductNodeUpdate)
)
router.include_router(
    crud_router("/product-subtypes", lambda s: s.products.subtypes, ProductNodeCreate, ProductNodeUpdate)
)
router.include_router(
    crud_router("/product-variants", lambda s: s.products.variants, ProductNodeCreate, ProductNodeUpdate)
)
router.include_router(
    crud_router("/templates", lambda s: s.templates, CommunicationTemplateCreate, CommunicationTemplateUpdate)
)
router.include_router(
    crud_router(
        "/schema-configurations",
        lambda s: s.schema_configurations,
        SchemaConfigurationCreate,
        SchemaConfigurationUpdate,
    )
)
