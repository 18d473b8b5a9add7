"""
Run the relay with uvicorn on the configured PORT.

    python -m app.server        (from backend/)
    support-relay               (installed console script)

uvicorn handles SIGINT/SIGTERM: in-flight requests finish before the
shutdown hook logs and the process exits.
"""

import uvicorn

from app.config import settings


def run() -> None:
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
