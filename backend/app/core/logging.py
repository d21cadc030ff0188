"""
Logging setup
"""

import logging
import re

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_SECRET_PARAM = re.compile(r"([?&](?:api_key|t)=)[^&\s]+")


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx logs every request URL at INFO, which would leak the API key
    logging.getLogger("httpx").setLevel(logging.WARNING)


def redact_url(url: str) -> str:
    """Hide API tokens in URLs before they are logged"""
    return _SECRET_PARAM.sub(r"\1HIDDEN", url)
