import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from accessgate.api.deps import get_settings
from accessgate.api.middleware import AccessGateMiddleware
from accessgate.api.routes import maintenance, pages, setup, system_lock
from accessgate.app_shell.config import validate_startup
from accessgate.app_shell.context import AccessContext
from accessgate.rules.loader import load_rules

CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def create_app(context: AccessContext | None = None) -> FastAPI:
    """Build the application; ``context`` skips config loading (tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        ctx = context
        if ctx is None:
            settings = get_settings()

            # Load rules and validate on startup (fail-fast)
            try:
                rules = load_rules(settings.rules_path)
            except (FileNotFoundError, ValueError) as e:
                print(f"CRITICAL: Rules load failed: {e}", file=sys.stderr)
                sys.exit(1)
            validate_startup(rules, settings)
            print(f"INFO: Rules loaded from {settings.rules_path}")

            ctx = AccessContext.create(rules, settings)
            ctx.init()

        app.state.context = ctx
        try:
            yield
        finally:
            if context is None:
                ctx.teardown()
            app.state.context = None

    app = FastAPI(
        title="Capsera Access API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # --- Routers ---
    app.include_router(setup.router, prefix="/api/admin/setup", tags=["Admin Setup"])
    app.include_router(
        system_lock.router, prefix="/api/admin/system-lock", tags=["System Lock"]
    )
    app.include_router(maintenance.router, prefix="/api/maintenance", tags=["Maintenance"])
    app.include_router(pages.router, prefix="", tags=["Pages"])

    # Added last so it runs first: CORS preflights never hit the gate.
    app.add_middleware(AccessGateMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "service": "access"}

    return app


app = create_app()
