"""
FastAPI service for taste-based plan suggestions.
Exposes the suggest/feed pipeline plus the review, friend and user endpoints.
"""

from datetime import datetime, timezone
from typing import Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from tasteplans.api import friends, plans, reviews, users
from tasteplans.api.dependencies import close_clients, get_settings
from tasteplans.config import ServiceSettings


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    persistence_configured: bool
    generator_configured: bool
    maps_configured: bool
    memory_configured: bool


# Initialize FastAPI app
app = FastAPI(
    title="Taste Plans API",
    description="Group activity suggestions from review history, enriched with real places",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(plans.router)
app.include_router(reviews.router)
app.include_router(friends.router)
app.include_router(users.router)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request, exc: StarletteHTTPException):
    """Answer HTTP errors with the ``{"error": ...}`` envelope clients expect."""
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.on_event("shutdown")
def shutdown_event():
    """Release provider clients when the API stops."""
    close_clients()


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint."""
    return {
        "message": "Taste Plans API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(settings: ServiceSettings = Depends(get_settings)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        persistence_configured=bool(settings.supabase_url and settings.supabase_key),
        generator_configured=bool(settings.openai_api_key),
        maps_configured=bool(settings.google_maps_api_key),
        memory_configured=settings.memory_enabled,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
