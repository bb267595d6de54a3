"""Run the API with uvicorn: `python -m policy_admin`."""

from __future__ import annotations

import uvicorn

from policy_admin.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "policy_admin.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
