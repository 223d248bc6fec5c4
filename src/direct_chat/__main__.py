"""Entrypoint: python -m direct_chat"""
from __future__ import annotations

import uvicorn

from direct_chat.config import settings


def main() -> None:
    uvicorn.run(
        "direct_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
