"""
Clipmill backend service — video upload / transform
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import ServiceSettings
from app.execution.runner import InvocationExecutor, TranscodeJobRunner
from app.routes import health
from app.routes import process

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def create_app(
    settings: Optional[ServiceSettings] = None,
    executor: Optional[InvocationExecutor] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Service settings (default: from environment)
        executor: Invocation executor (default: real ffmpeg subprocesses)
    """
    settings = settings or ServiceSettings.from_env()

    app = FastAPI(title="Clipmill Backend", version="0.1.0")

    # CORS middleware for browser uploads
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Clipmill-Token", "X-Clipmill-Resolution"],
    )

    app.state.settings = settings
    app.state.job_runner = TranscodeJobRunner(settings, executor=executor)

    app.include_router(health.router)
    app.include_router(process.router)

    @app.get("/")
    async def root():
        return {"service": "clipmill-backend", "status": "running"}

    return app


app = create_app()


def run_server(settings: Optional[ServiceSettings] = None) -> None:
    """Run the backend with uvicorn."""
    import uvicorn

    settings = settings or ServiceSettings.from_env()
    configure_logging(settings.log_level)

    logger = logging.getLogger(__name__)
    logger.info(f"Starting Clipmill backend on {settings.host}:{settings.port}")
    logger.info(f"Working directory: {settings.work_dir}")
    logger.info(f"Outro strategy: {settings.outro_strategy.value}")

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
