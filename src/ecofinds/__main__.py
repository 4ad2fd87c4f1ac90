"""EcoFinds entrypoint.

Run with:
  python -m ecofinds
"""

import uvicorn

from ecofinds.config import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run(
        "ecofinds.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    main()
