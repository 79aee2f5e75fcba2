import logging


def configure_logging(level: str = "INFO") -> None:
    """
    Configure logging for the Door Monitor.
    """

    # Convert "INFO" -> logging.INFO etc.
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # Configure root logger.
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # httpx logs every request at INFO; keep it quiet unless we are debugging.
    if numeric_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
