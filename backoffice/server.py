from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from backoffice.api.routers import auth_router, dashboard_router, stats_router
from backoffice.core.config import get_settings
from backoffice.core.errors import register_exception_handlers
from backoffice.core.log_config import configure_logging

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth_router.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(stats_router.router, prefix=settings.API_PREFIX, tags=["dashboard-stats"])
app.include_router(dashboard_router.router, prefix=settings.API_PREFIX, tags=["dashboard"])

@app.get("/api/health", tags=["Root"])
async def health():
    return {
        "status": "success",
        "message": "Admin API is running",
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

# Optional: Add logic to run the server directly for development
if __name__ == "__main__":
    uvicorn.run("backoffice.server:app", host="0.0.0.0", port=8000, reload=True)
