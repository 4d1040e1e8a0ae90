"""
Frontend router serving the dashboard page.
"""
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates

from router.dependencies import get_store
from services.vectordb.store import VectorDatabaseStore

router = APIRouter()

templates = Jinja2Templates(directory=Path(__file__).parent / "templates")


@router.get("/")
def dashboard(request: Request, store: VectorDatabaseStore = Depends(get_store)):
    """Databases with their record counts."""
    return templates.TemplateResponse(request, "dashboard.html", {"summary": store.summary()})
