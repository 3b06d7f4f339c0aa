import logging

from fastapi import FastAPI
from dashboard.core.config import settings
from dashboard.core.middleware import RequestLogMiddleware
from dashboard.api import health

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(RequestLogMiddleware)

# Include routers
app.include_router(health.router)

from dashboard.api import cache, collections, overview, session
app.include_router(collections.router)
app.include_router(cache.router)
app.include_router(overview.router)
app.include_router(session.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
