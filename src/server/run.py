"""CLI entry point for launching the FastAPI app with uvicorn."""

import uvicorn

from .dependencies import config


def main() -> None:
    """Run the server; auto-reload is on when ``server.debug`` is set."""
    uvicorn.run(
        "src.server.app:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.debug,
        reload_dirs=["src"] if config.server.debug else None,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
