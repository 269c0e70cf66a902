import logging
import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import Base, engine
from app.graphql.router import create_graphql_router
from app.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from app.services.pubsub import TopicBus, get_topic_bus


setup_structured_logging(log_level=settings.log_level, json_format=settings.log_json)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Chat backend with a GraphQL API and real-time message subscriptions",
        debug=settings.debug,
        version=settings.app_version,
    )

    # CORS (adjust origins as needed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    # GraphQL over HTTP and WebSocket
    app.include_router(create_graphql_router(), prefix=settings.graphql_path, tags=["GraphQL"])

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)  # Logs SQL statements

    return app

app = create_app()

@app.on_event("startup")
async def startup_event():
    """Tasks to run at application startup."""
    logger.info("Starting up the application...")
    if settings.debug:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down the application...")
    await engine.dispose()

@app.get("/", tags=["Root"])
async def root():
    return {"message": "Welcome to the GraphQL Chat API", "graphql": settings.graphql_path}

@app.get("/health", tags=["Root"])
async def health(bus: TopicBus = Depends(get_topic_bus)):
    return {"status": "ok", "subscriptions": bus.get_stats()}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=4000, reload=settings.debug)
