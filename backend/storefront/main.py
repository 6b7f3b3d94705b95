import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import AppConfig
from .models import Setting
from .routers import install
from .services.container import StorefrontServices

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# Reachable while the store is not installed yet
INSTALL_GATE_EXEMPT = ("/install", "/health", "/static", "/docs", "/openapi.json")


def _get_cors_origins(config: AppConfig) -> list:
    if config.cors_origins == "*":
        return ["*"]
    origins = ["http://localhost:3000"]
    for o in config.cors_origins.split(","):
        o = o.strip()
        if o and o not in origins:
            origins.append(o)
    return origins


def create_app(config: Optional[AppConfig] = None, services: Optional[StorefrontServices] = None) -> FastAPI:
    config = config or (services.config if services else AppConfig.from_env())
    services = services or StorefrontServices(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services.settings_store.is_installed(reload=True):
            installed = services.plugin_service.install_pending_plugins()
            logger.info("Store is installed (%d plugin(s) activated on start)", len(installed))
        else:
            logger.info("Store is not installed, serving the installation wizard")
        yield
        services.shutdown()

    app = FastAPI(
        title="Storefront API",
        description="E-commerce storefront with first-run installation wizard",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_cors_origins(config),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "X-Requested-With"],
    )

    @app.middleware("http")
    async def install_gate(request: Request, call_next):
        path = request.url.path
        if not path.startswith(INSTALL_GATE_EXEMPT) and not services.settings_store.is_installed():
            return RedirectResponse("/install", status_code=302)
        return await call_next(request)

    app.include_router(install.router)

    @app.get("/health")
    def health():
        provider = services.data_provider()
        if provider is None:
            return {"status": "healthy", "installed": False, "version": VERSION}
        try:
            with provider.get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
            return {"status": "healthy", "installed": True, "db": "connected", "version": VERSION}
        except SQLAlchemyError as e:
            return {"status": "unhealthy", "installed": True, "db": str(e)}

    @app.get("/")
    def root():
        provider = services.data_provider()
        db = provider.session_factory()()
        try:
            setting = db.query(Setting).filter(Setting.name == "storeinformationsettings.storename").first()
            return {"name": setting.value if setting else "Storefront", "version": VERSION}
        finally:
            db.close()

    return app


app = create_app()
