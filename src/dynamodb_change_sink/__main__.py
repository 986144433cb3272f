from __future__ import annotations

import logging
import sys

from dynamodb_change_sink.app import configure_logging, run
from dynamodb_change_sink.settings import Settings

LOGGER = logging.getLogger(__name__)


def main() -> int:
    configure_logging()
    try:
        settings = Settings()
        return run(settings=settings, stdin=sys.stdin, stdout=sys.stdout)
    except (FileNotFoundError, ValueError):
        LOGGER.exception("startup_failed")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
