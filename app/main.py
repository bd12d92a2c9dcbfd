"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.api import webhooks

app = FastAPI(
    title="Artemo Provisioning Service",
    description="Billing lifecycle provisioning webhooks and tool pre-fill API for the Artemo AI Dashboard",
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])

# Webhooks authenticate with shared secrets, not user JWTs
app.include_router(webhooks.router, tags=["webhooks"])
