from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    # uvicorn installs its own root handlers; replace them so every module logs the same way
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
