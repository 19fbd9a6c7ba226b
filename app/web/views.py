"""Server-rendered referral dashboard page."""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(tags=["web"], include_in_schema=False)


@router.get("/", response_class=HTMLResponse)
async def referral_dashboard(request: Request) -> HTMLResponse:
    """Render the lookup form. The page script calls /api/referral-uses."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": "Referral Dashboard",
            "lookup_url": str(request.url_for("get_referral_uses").path),
        },
    )
