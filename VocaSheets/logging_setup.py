import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level=logging.INFO) -> logging.Logger:
    """Attach one stream handler to the package logger (safe to call twice)."""
    log = logging.getLogger("VocaSheets")
    log.setLevel(level)
    if not any(getattr(h, "_voca_handler", False) for h in log.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._voca_handler = True
        log.addHandler(handler)
        log.propagate = False
    return log
