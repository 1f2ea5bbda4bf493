import os
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from app.api.v1 import registrations
from app.dashboard import admin
from app.dashboard import routes as dashboard
from app.wrapper.registration_client import RegistrationAPIError, RegistrationClient, get_client
from app.core.config import APP_NAME, API_BASE_URL, STATIC_DIR, logger

app = FastAPI(
    title=APP_NAME,
    description="Registration form and admin dashboard for digital business cards",
    version="1.0.0"
)

# Global Exception Handlers
@app.exception_handler(RegistrationAPIError)
async def registration_api_error_handler(request: Request, exc: RegistrationAPIError):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": type(exc).__name__, "message": str(exc)},
    )

# Static Files
if not os.path.exists(STATIC_DIR):
    os.makedirs(STATIC_DIR, exist_ok=True)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

# Include Routers
app.include_router(dashboard.router, tags=["Registration"])
app.include_router(admin.router, prefix="/admin-dashboard", tags=["Admin Dashboard"])
app.include_router(registrations.router, prefix="/api/v1/registrations", tags=["Registrations"])

@app.get("/api/v1/health")
async def health_check():
    return {"status": "ok", "app": APP_NAME}

@app.get("/api/handshake")
def api_handshake(client: RegistrationClient = Depends(get_client)):
    """Verifies the registrations API is reachable and accepts our credentials."""
    try:
        count = client.ping()
    except RegistrationAPIError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "error",
                "api_base_url": API_BASE_URL,
                "authenticated": client.auth.is_authenticated,
                "message": str(e),
            },
        )
    return {
        "status": "healthy",
        "api_base_url": API_BASE_URL,
        "authenticated": client.auth.is_authenticated,
        "message": f"Registrations API reachable. Found {count} registrations.",
        "registration_count": count,
    }
