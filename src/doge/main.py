"""Command-line entrypoint."""

import uvicorn

from doge.config import Settings


def main() -> None:
    """Serve the ASGI app with uvicorn."""
    settings = Settings()
    uvicorn.run("doge.api.asgi:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
