#!/usr/bin/env python
"""Script to run the TaskFlow backend server."""
import os
from pathlib import Path

import uvicorn

if __name__ == "__main__":
    # Run from the project root so the default SQLite file lands there
    os.chdir(Path(__file__).resolve().parent)
    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        reload=os.getenv("RELOAD", "false").lower() == "true",
    )
