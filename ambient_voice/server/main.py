"""Console entry point: run the ASGI app with uvicorn."""

from __future__ import annotations

import uvicorn
from dotenv import load_dotenv

from ambient_voice.config import AppConfig


def main() -> None:
    load_dotenv()
    config = AppConfig.load_from_env()

    uvicorn.run(
        "ambient_voice.server.asgi:app",
        host=config.host,
        port=config.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
