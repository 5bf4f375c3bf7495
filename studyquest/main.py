from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

# Importing settings loads the .env file before anything else reads the environment
from studyquest.core.config import settings

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Import core components
from studyquest.core.exceptions import StudyQuestError, LeaderboardUnavailableError
from studyquest.core.firebase_config import initialize_firebase_app
from studyquest.core.database import create_db_and_tables
from studyquest.routes import api_router_v1 # Import the main API router

# Seconds a client should wait before retrying a failed leaderboard read
LEADERBOARD_RETRY_AFTER_SECONDS = 30


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="XP, levels, achievements and daily-ranked leaderboards for learning content completions.",
    version="0.1.0",
)

# --- Event Handlers ---
@app.on_event("startup")
async def startup_event():
    logger.info("Application startup...")
    try:
        initialize_firebase_app()
        logger.info("Firebase Admin SDK initialized successfully during startup.")
    except Exception as e:
        # Authenticated endpoints will answer 500 until credentials are fixed
        logger.error(f"Critical error during Firebase initialization on startup: {e}", exc_info=True)

    # Development convenience; production schemas are managed with Alembic
    try:
        logger.info("Attempting to create database tables if they don't exist (dev mode)...")
        create_db_and_tables()
        logger.info("Database tables checked/created.")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}", exc_info=True)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown...")

# --- Middleware ---
logger.info(f"Allowed CORS origins: {settings.CORS_ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error Handlers ---
@app.exception_handler(StudyQuestError)
async def studyquest_exception_handler(request: Request, exc: StudyQuestError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} for request {request.method} {request.url}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__} for request {request.method} {request.url}: {exc.message}")
    headers = None
    if isinstance(exc, LeaderboardUnavailableError):
        headers = {"Retry-After": str(LEADERBOARD_RETRY_AFTER_SECONDS)}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

# Global Error Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception for request {request.method} {request.url}: {exc}", exc_info=True)
    # Avoid exposing detailed error messages for generic exceptions
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected internal server error occurred."},
    )

# --- API Routers ---
app.include_router(api_router_v1) # e.g. /api/v1/progress/update, /api/v1/leaderboard

@app.get("/", tags=["Root"])
async def read_root():
    """
    Root endpoint to check if the API is running.
    """
    return {"message": f"Welcome to the {settings.PROJECT_NAME}! Navigate to /docs for API documentation."}

# --- Main execution (for development) ---
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")
    log_level = os.getenv("UVICORN_LOG_LEVEL", "info")

    logger.info(f"Starting Uvicorn server on {host}:{port} with log level {log_level}")
    uvicorn.run(app, host=host, port=port, log_level=log_level)
