import os

from rental_engine import create_app
from rental_engine.config import DevConfig, ProdConfig


def _running_in_production() -> bool:
    if (os.getenv("APP_ENV") or "").lower() == "production":
        return True
    return any(
        os.getenv(k)
        for k in (
            "RAILWAY_PROJECT_ID",
            "RAILWAY_SERVICE_ID",
            "RAILWAY_ENVIRONMENT",
        )
    )


config = ProdConfig if _running_in_production() else DevConfig
app = create_app(config)

if __name__ == "__main__":
    app.run()
