import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=LOG_FORMAT, force=True)

    # keep per-request transport chatter out of INFO output
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
    logging.getLogger("httpcore").setLevel(max(resolved, logging.WARNING))
