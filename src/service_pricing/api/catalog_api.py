"""
Catalog API - FastAPI router for option composition, package totals and
organization customizations.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config.settings import get_settings
from ..engine import ServicePricingEngine
from ..engine.errors import ConflictOnSave, InvalidReference, NotFound, ServicePricingError, ValidationError
from ..store.base import LineItemFilter
from .schemas import BreakdownOut, LineItemOut, OverrideIn, OverrideOut, PackageTotalsOut
from .state import get_engine

router = APIRouter(prefix="/api", tags=["pricing"])


def _http_error(e: ServicePricingError) -> HTTPException:
    """Map engine errors to HTTP errors."""
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, InvalidReference):
        return HTTPException(status_code=400, detail={"message": e.message, "refs": e.refs})
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail={"errors": e.errors})
    if isinstance(e, ConflictOnSave):
        return HTTPException(status_code=409, detail=e.message)
    return HTTPException(status_code=500, detail=e.message)


def _places() -> int:
    return get_settings().money_places


@router.get("/line-items", response_model=list[LineItemOut])
async def list_line_items(
    category: Optional[str] = None,
    search: Optional[str] = None,
    engine: ServicePricingEngine = Depends(get_engine),
):
    """List catalog line items."""
    items = engine.store.fetch_line_items(LineItemFilter(category=category, search=search))
    return [LineItemOut.from_line_item(li) for li in items]


@router.get("/options/{option_id}/compose", response_model=BreakdownOut)
async def compose_option(
    option_id: str,
    quantity: Decimal = Query(Decimal(1), ge=0),
    organization_id: Optional[str] = None,
    engine: ServicePricingEngine = Depends(get_engine),
):
    """Priced breakdown of a service option."""
    try:
        breakdown = engine.compose(option_id, quantity, organization_id)
    except ServicePricingError as e:
        raise _http_error(e)
    return BreakdownOut.from_breakdown(breakdown, _places())


@router.get("/options/{option_id}/overrides/{organization_id}", response_model=OverrideOut)
async def get_override(
    option_id: str,
    organization_id: str,
    engine: ServicePricingEngine = Depends(get_engine),
):
    """Get an organization's customization of an option."""
    override = engine.overrides.get_override(option_id, organization_id)
    if override is None:
        raise HTTPException(
            status_code=404,
            detail=f"No customization of '{option_id}' for organization '{organization_id}'",
        )
    return OverrideOut.from_override(override)


@router.put("/options/{option_id}/overrides/{organization_id}", response_model=OverrideOut)
async def save_override(
    option_id: str,
    organization_id: str,
    body: OverrideIn,
    engine: ServicePricingEngine = Depends(get_engine),
):
    """Create or replace an organization's customization."""
    try:
        saved = engine.save_override(option_id, organization_id, body.to_delta())
    except ServicePricingError as e:
        raise _http_error(e)
    return OverrideOut.from_override(saved.override, saved.warnings)


@router.post("/options/{option_id}/overrides/{organization_id}/preview", response_model=BreakdownOut)
async def preview_override(
    option_id: str,
    organization_id: str,
    body: OverrideIn,
    quantity: Decimal = Query(Decimal(1), ge=0),
    engine: ServicePricingEngine = Depends(get_engine),
):
    """Compose an option with an unsaved customization."""
    try:
        breakdown = engine.preview_override(option_id, organization_id, body.to_delta(), quantity)
    except ServicePricingError as e:
        raise _http_error(e)
    return BreakdownOut.from_breakdown(breakdown, _places())


@router.delete("/options/{option_id}/overrides/{organization_id}")
async def delete_override(
    option_id: str,
    organization_id: str,
    engine: ServicePricingEngine = Depends(get_engine),
):
    """Reset an organization to the base option."""
    try:
        removed = engine.delete_override(option_id, organization_id)
    except ServicePricingError as e:
        raise _http_error(e)
    if not removed:
        raise HTTPException(
            status_code=404,
            detail=f"No customization of '{option_id}' for organization '{organization_id}'",
        )
    return {"success": True, "message": f"Customization of '{option_id}' removed"}


@router.get("/packages/compare", response_model=list[PackageTotalsOut])
async def compare_packages(
    ids: str,
    organization_id: Optional[str] = None,
    engine: ServicePricingEngine = Depends(get_engine),
):
    """Totals of several packages, essentials → deluxe. ``ids`` is comma-separated."""
    package_ids = [pid.strip() for pid in ids.split(',') if pid.strip()]
    try:
        totals = engine.compare_packages(package_ids, organization_id)
    except ServicePricingError as e:
        raise _http_error(e)
    return [PackageTotalsOut.from_totals(t, _places()) for t in totals]


@router.get("/packages/{package_id}/totals", response_model=PackageTotalsOut)
async def package_totals(
    package_id: str,
    organization_id: Optional[str] = None,
    engine: ServicePricingEngine = Depends(get_engine),
):
    """Required/optional/upgrade totals of a package."""
    try:
        totals = engine.aggregate(package_id, organization_id)
    except ServicePricingError as e:
        raise _http_error(e)
    return PackageTotalsOut.from_totals(totals, _places())
