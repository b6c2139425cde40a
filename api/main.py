"""
Offer XML Pipeline API - Main Application.

FastAPI application exposing offer validation and XML generation.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.routers import validation, xml
from repositories.config import configure_logging, load_settings

configure_logging(load_settings())

app = FastAPI(
    title="Offer XML Pipeline API",
    description="REST API for validating energy-market offers and generating their XML files",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(validation.router, prefix="/api/v1", tags=["Validation"])
app.include_router(xml.router, prefix="/api/v1", tags=["XML"])


@app.get("/health", tags=["Health"])
def health_check():
    """Report the API status and version."""
    return {
        "status": "healthy",
        "version": __version__,
        "service": "offer-xml-pipeline-api",
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Offer XML Pipeline API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
