"""
Public pages served outside the API prefix.

The maintenance page is where the gate redirects blocked browser requests.
It renders from the fail-open status, so it stays up when the store is down.
"""

from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from accessgate.api.deps import get_context
from accessgate.app_shell.context import AccessContext
from accessgate.components import maintenance

router = APIRouter()


MAINTENANCE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="robots" content="noindex" />
<title>Down for maintenance</title>
</head>
<body>
<main>
<h1>Down for maintenance</h1>
<p>{message}</p>
<p>Estimated time: {estimated_time}</p>
</main>
</body>
</html>
"""


def render_maintenance_page(status: maintenance.MaintenanceStatus) -> str:
    return MAINTENANCE_TEMPLATE.format(
        message=escape(status.message),
        estimated_time=escape(status.estimated_time),
    )


@router.get("/maintenance", response_class=HTMLResponse)
def maintenance_page(ctx: AccessContext = Depends(get_context)) -> HTMLResponse:
    result = maintenance.run_status(maintenance.StatusInput(), ctx.maintenance)
    assert result.status is not None
    # 503 while active so crawlers do not index the placeholder.
    return HTMLResponse(
        content=render_maintenance_page(result.status),
        status_code=503 if result.status.enabled else 200,
        headers={"Retry-After": "3600"} if result.status.enabled else None,
    )
