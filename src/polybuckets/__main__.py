"""
polybuckets web server
"""

from polybuckets.config import get_settings
from polybuckets.log import setup_logging
from polybuckets.web import create_app

import argparse
import logging
import uvicorn


logger = logging.getLogger("polybuckets")


def main(args=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--host", default=settings.ip_address, help="Address to bind to")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")
    opts = parser.parse_args(args)

    setup_logging(opts.log_level.upper())
    logger.info(
        "loaded config",
        extra={"config": settings.model_dump(mode="json")},
    )
    logger.info("starting server", extra={"ip": opts.host, "port": opts.port})
    uvicorn.run(
        create_app(settings),
        host=opts.host,
        port=opts.port,
        log_config=None,
        access_log=False,
    )


if __name__ == "__main__":
    main()
