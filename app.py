"""
Service entry point: `uvicorn app:app` or `python app.py`.
"""

import uvicorn

from cosmofy.config import Settings, configure_logging
from cosmofy.server import create_app

settings = Settings.from_env()
configure_logging(settings)
app = create_app(settings)

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
