from fastapi import FastAPI
from cms.core.config import settings
from cms.core.database import engine, Base
from cms.core.errors import register_error_handlers
from cms.core.logging_config import setup_logging
from cms.routers import health, auth, pages, site

setup_logging(settings.LOG_LEVEL)

# Init DB
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="CMS Pages API",
    version="0.1.0"
)

register_error_handlers(app)

# Routes
app.include_router(health.router, prefix="/health")
app.include_router(auth.router)
app.include_router(pages.router)
app.include_router(site.router)
