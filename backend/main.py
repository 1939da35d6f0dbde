# backend/main.py
import os

import uvicorn


def run():
    """Console entry point: serve backend.app.main:app."""
    uvicorn.run(
        "backend.app.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8091")),
        # the transport key is per process unless TRANSPORT_PRIVATE_KEY is set
        workers=1,
    )


if __name__ == "__main__":
    run()
