from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from online_exam.config import settings
from online_exam.services.session_manager import session_manager
import logging

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 %s is starting...", settings.app_name)
    logger.info("🔗 Upstream API: %s", settings.api_base_url)


@app.on_event("shutdown")
async def shutdown_event():
    """Close the shared upstream client"""
    await session_manager.shutdown()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.api_version,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


# Import and include routers
from online_exam.routes import online_test

app.include_router(online_test.router, prefix="/api/online-test", tags=["Online Test"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("online_exam.main:app", host=settings.host, port=settings.port)
