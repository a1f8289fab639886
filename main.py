import os
import uvicorn

from preview_screenshot.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "preview_screenshot.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "False").lower() in ("true", "1", "t"),
        workers=settings.workers,
    )
