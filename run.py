"""Development server entry point."""

import logging
import os

from paste.translogger import TransLogger  # type: ignore[import-untyped]
from waitress import serve

from partswap import create_app
from partswap.config import get_settings


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = get_settings()
    app = create_app(settings)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5000))

    debug_mode = settings.FLASK_ENV in ("development", "testing")

    if debug_mode:
        app.logger.info("Running in debug mode")
        app.run(host=host, port=port, debug=True)
        return

    # Production: Waitress behind a request logger
    wsgi = TransLogger(app, setup_console_handler=False)
    threads = int(os.getenv("WAITRESS_THREADS", 16))
    wsgi.logger.info(f"Using Waitress WSGI server with {threads} threads")

    try:
        serve(wsgi, host=host, port=port, threads=threads)
    finally:
        # Let running import tasks finish their current item
        app.container.task_service().shutdown()


if __name__ == "__main__":
    main()
