"""StudyByEnergy Check-in API - FastAPI application entry point."""
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from energy_session import InvalidTransitionError

from .config import get_settings
from .routes import session, timer, auth, history
from .services import get_services

load_dotenv()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = get_services()
    await services.startup()
    try:
        yield
    finally:
        services.shutdown()


app = FastAPI(
    title="StudyByEnergy Check-in API",
    description="Energy check-in, activity timer and optional cloud sync",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "operation": exc.operation, "phase": exc.phase},
    )


# Include routers
app.include_router(session.router)
app.include_router(timer.router)
app.include_router(auth.router)
app.include_router(history.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for the API."""
    return {"status": "healthy", "service": "checkin-api"}


if __name__ == "__main__":
    import logging
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "server.checkin_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
