"""Run FastAPI server."""

import uvicorn

from church_bms.config import settings
from church_bms.api.main import app

if __name__ == "__main__":
    server = settings.server
    print(f"Starting Church BMS API on http://{server.host}:{server.port}")
    if server.debug:
        uvicorn.run("church_bms.api.main:app", host=server.host, port=server.port, reload=True)
    else:
        uvicorn.run(app, host=server.host, port=server.port)
