"""Run the server: python -m valentine (listens on HOST:PORT, default 0.0.0.0:3000)."""

import uvicorn

from valentine.config import settings


def main() -> None:
    uvicorn.run(
        "valentine.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
