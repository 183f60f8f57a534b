"""FastAPI routes for the Metadata API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ..metadata.factory import ClassMetadataFactory
from .api_models import (
    ClassMetadataModel,
    ClassSummaryModel,
    FactoryStatsResponse,
    MetadataListResponse,
    MetadataStatusResponse,
)

router = APIRouter(tags=["Metadata"])

# Configuration - set during app startup
_factory: ClassMetadataFactory | None = None


def configure(factory: ClassMetadataFactory | None) -> None:
    """Configure the Metadata routes.

    Args:
        factory: The metadata factory to serve
    """
    global _factory
    _factory = factory


def _get_factory() -> ClassMetadataFactory:
    if _factory is None:
        raise HTTPException(status_code=503, detail="Metadata factory not initialized")
    return _factory


@router.get("/metadata", response_model=MetadataListResponse)
def list_metadata():
    """Build (if needed) and list the metadata of every mapped class."""
    factory = _get_factory()
    classes = [
        ClassSummaryModel(
            class_name=m.class_name,
            kind=m.kind.value,
            parent=m.parent_class_name,
            table=m.table_name,
        )
        for m in factory.get_all_metadata()
    ]
    return MetadataListResponse(classes=classes, total=len(classes))


@router.get("/metadata/{class_name}", response_model=ClassMetadataModel)
def describe_metadata(class_name: str):
    """Full metadata of one class."""
    factory = _get_factory()
    if not factory.has_metadata_for(class_name) and factory.is_transient(class_name):
        raise HTTPException(status_code=404, detail=f"'{class_name}' is not a mapped class")
    metadata = factory.get_metadata_for(class_name)
    return ClassMetadataModel.from_metadata(metadata.to_dict())


@router.get("/metadata/{class_name}/status", response_model=MetadataStatusResponse)
def metadata_status(class_name: str):
    """Cache presence and transience of a class, without building anything."""
    factory = _get_factory()
    return MetadataStatusResponse(
        class_name=class_name,
        loaded=factory.has_metadata_for(class_name),
        transient=factory.is_transient(class_name),
    )


@router.get("/stats", response_model=FactoryStatsResponse)
def factory_stats():
    """Factory cache statistics."""
    return FactoryStatsResponse(**_get_factory().stats)
