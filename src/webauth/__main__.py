"""webauth entrypoint.

Run with:
  python -m webauth
"""

import os
import uvicorn

from webauth.app_logging import setup_logger

def main() -> None:
    host = os.getenv("WEBAUTH_HOST", "0.0.0.0")
    port = int(os.getenv("WEBAUTH_PORT", "8000"))
    reload = os.getenv("WEBAUTH_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    setup_logger()
    # log_config=None lets uvicorn's access log reach the redacting root handler.
    uvicorn.run("webauth.app:create_app", factory=True, host=host, port=port, reload=reload, log_config=None)

if __name__ == "__main__":
    main()
