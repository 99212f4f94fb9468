# routes.py
from fastapi import FastAPI
from controller.health_controller import health_router
from controller.ingest_controller import ingest_router
from controller.search_controller import search_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(health_router)
    app.include_router(search_router)
    app.include_router(ingest_router)
