"""FastAPI entry point for metadata introspection.

Start with:
    PYTHONPATH=src uvicorn mapping_svc.app:app --host 0.0.0.0 --port 8060

Configuration is read from the file named by ``MAPPING_CONFIG``
(default ``config.yaml``; built-in defaults when it does not exist).
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api import routes as metadata_routes
from .bootstrap import build_factory, configure_logging
from .config import Config
from .errors import (
    GenerationError,
    HierarchyValidationError,
    MappingInconsistencyError,
    MetadataError,
    UnresolvableClassError,
)

logger = logging.getLogger(__name__)


def load_config() -> Config:
    config_path = os.environ.get("MAPPING_CONFIG", "config.yaml")
    if Path(config_path).exists():
        logger.info(f"Loading config from {config_path}")
        return Config.load(config_path)
    logger.info(f"No config at {config_path}, using defaults")
    return Config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the metadata factory on startup."""
    logger.info("Starting metadata service...")
    config = load_config()
    metadata_routes.configure(build_factory(config))
    logger.info("Metadata service started")
    yield
    metadata_routes.configure(None)
    logger.info("Metadata service stopped")


app = FastAPI(
    title="Mapping Metadata Service",
    description="Resolve and inspect the mapping metadata of persistent classes.",
    version=__version__,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Metadata", "description": "Resolve and inspect class metadata"},
        {"name": "Health", "description": "Service health"},
    ],
)

app.include_router(metadata_routes.router)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok", "version": __version__}


@app.exception_handler(UnresolvableClassError)
async def unresolvable_class_handler(request: Request, exc: UnresolvableClassError):
    return JSONResponse(
        status_code=404,
        content={"error": "Unresolvable class", "detail": str(exc), "class_name": exc.class_name},
    )


@app.exception_handler(MappingInconsistencyError)
async def mapping_inconsistency_handler(request: Request, exc: MappingInconsistencyError):
    return JSONResponse(
        status_code=422,
        content={"error": "Mapping inconsistency", "detail": str(exc), "class_name": exc.class_name},
    )


@app.exception_handler(HierarchyValidationError)
async def hierarchy_validation_handler(request: Request, exc: HierarchyValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": "Invalid hierarchy",
            "class_name": exc.class_name,
            "issues": exc.issues,
        },
    )


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    return JSONResponse(
        status_code=500,
        content={"error": "Generation failed", "detail": str(exc), "class_name": exc.class_name},
    )


@app.exception_handler(MetadataError)
async def metadata_error_handler(request: Request, exc: MetadataError):
    return JSONResponse(
        status_code=500,
        content={"error": "Metadata error", "detail": str(exc)},
    )


def run():
    """Run the service with uvicorn."""
    import uvicorn

    config = load_config()
    configure_logging(config)

    uvicorn.run(
        "mapping_svc.app:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
    )


if __name__ == "__main__":
    run()
