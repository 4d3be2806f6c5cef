"""Main entry point for the video transcript RAG service.

Starts the FastAPI app defined in src.api.main with uvicorn.
"""

import os

from src.api.main import app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8030")),
        reload=os.getenv("ENVIRONMENT") != "production",
    )
