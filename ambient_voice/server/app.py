"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Load shared capabilities ONCE per process (models, OpenAI client)
- Register routes
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ambient_voice.config import AppConfig
from ambient_voice.server.routes import register_routes
from ambient_voice.session.bootstrap import Capabilities, build_capabilities


def create_app(
    config: AppConfig | None = None,
    capabilities: Capabilities | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests pass config/capabilities explicitly; the ASGI entry point reads
    the environment.
    """
    config = config or AppConfig.load_from_env()

    app = FastAPI(title="Ambient Voice Pipeline")

    app.state.config = config
    app.state.capabilities = capabilities or build_capabilities(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    return app
