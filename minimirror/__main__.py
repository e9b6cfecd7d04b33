import logging
import sys

import uvicorn

from minimirror.models import MirrorConfig
from minimirror.vars import HOST, LOG_LEVEL

logger = logging.getLogger("uvicorn.error")


def main() -> int:
    logging.basicConfig(level=LOG_LEVEL.upper(), format="%(levelname)s:     %(message)s")

    config = MirrorConfig.from_env()
    problems = config.validate()
    if problems:
        for problem in problems:
            logger.critical(f"Invalid configuration: {problem}")
        return 1

    logger.info(
        f"Mirroring {config.internal_base} on port {config.listen_port}"
        + (
            f" (secondary domains: {', '.join(config.secondary_domains)})"
            if config.secondary_domains
            else ""
        )
    )
    # uvicorn drains in-flight requests on SIGINT/SIGTERM and exits
    # non-zero itself when the port cannot be bound
    uvicorn.run(
        "minimirror.server:app",
        host=HOST,
        port=int(config.listen_port),
        log_level=LOG_LEVEL,
    )
    logger.info("Goodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
