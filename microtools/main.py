# microtools/main.py

import uvicorn

import microtools.config as config
from microtools.observability.logger import configure_logging
from microtools.utils.logger import log_info


def main():
    """ Main entry point: configure logging, then serve the FastAPI app. """
    # Structured JSON logging as early as possible
    configure_logging(config)

    log_info(f"Server starting at http://{config.HOST}:{config.PORT}")
    uvicorn.run(
        "microtools.main_fastapi:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
        reload=config.DEBUG,
        # Request lines carry capability tokens in paths and query strings.
        access_log=False,
    )


if __name__ == "__main__":
    main()
