from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config.logging_config import setup_logging
from ..config.settings import get_settings
from .catalog_api import router as catalog_router
from .state import get_engine, reset_engine

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)

app = FastAPI(
    title="Service Pricing API",
    description="Service option pricing, organization customizations and package totals",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Service Pricing API Active"}


@app.post("/system/reload")
async def reload_catalog():
    """Drop the cached engine; the next request re-reads the catalog."""
    reset_engine()
    engine = get_engine()
    return {
        "success": True,
        "line_items": len(engine.store.fetch_line_items()),
    }
