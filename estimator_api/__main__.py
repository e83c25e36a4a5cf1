from __future__ import annotations

import uvicorn

from estimator_api.config import get_settings


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "estimator_api.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    run()
