import uvicorn

from portfolio_api.core.app_factory import create_app
from portfolio_api.core.config import settings

app = create_app()


def run() -> None:
    """Serve the API with uvicorn (``portfolio-api`` console script)."""
    uvicorn.run(
        "portfolio_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app.debug,
        log_config=None,
        # Forwarding headers are resolved per request against APP_TRUSTED_PROXIES
        proxy_headers=False,
    )


if __name__ == "__main__":
    run()
