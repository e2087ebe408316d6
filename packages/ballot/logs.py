import logging
import sys

from pythonjsonlogger import jsonlogger


def configure_logging(level: str = "WARNING") -> None:
    """Send JSON-formatted records to stderr, keeping stdout for operator output."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
    # web3 and urllib3 are chatty at INFO
    for noisy in ("web3", "urllib3"):
        logging.getLogger(noisy).setLevel(max(logging.getLogger().level, logging.WARNING))
