import logging
import sys

from domain_admin.core import config

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger("domain_admin")
    root.addHandler(handler)
    root.setLevel(config.LOG_LEVEL)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``domain_admin`` hierarchy."""
    _configure_root()
    if not name.startswith("domain_admin"):
        name = f"domain_admin.{name}"
    return logging.getLogger(name)
