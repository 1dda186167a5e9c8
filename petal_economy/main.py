import uvicorn
from fastapi import FastAPI

from petal_economy.api.routes.health import router as health_router
from petal_economy.core.config import get_settings
from petal_economy.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    app = FastAPI(title="Petal Economy", version="0.1.0", docs_url=None, redoc_url=None)
    app.include_router(health_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "petal_economy.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
