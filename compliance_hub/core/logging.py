import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach one stream handler to the package logger tree.
    Safe to call more than once (e.g. app reloads, test imports).
    """
    root = logging.getLogger("compliance_hub")
    root.setLevel(level.upper())

    if not any(getattr(h, "_compliance_hub", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._compliance_hub = True  # marker so we never add it twice
        root.addHandler(handler)

    return root
