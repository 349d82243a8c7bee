"""ASGI entrypoint for the NutriSnap API."""

import uvicorn

from nutrisnap.api.app import create_app
from nutrisnap.containers import build_container

app = create_app(build_container())


def main() -> None:
    """Serve the API with uvicorn."""
    uvicorn.run("nutrisnap.api.asgi:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
