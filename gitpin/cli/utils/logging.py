import logging
import re
import sys
from typing import Set


logger = logging.getLogger("gitpin")

_URL_PASSWORD = re.compile(r"(?P<prefix>[a-zA-Z][a-zA-Z0-9+.-]*://[^/:@\s]+:)[^/@\s]+@")

_secrets: Set[str] = set()


def register_secret(secret: str):
    """Never print this value, e.g. a password or token."""
    if secret:
        _secrets.add(secret)


def redact(text: str) -> str:
    """Strip URL passwords and registered secrets from text meant for the terminal."""
    redacted = _URL_PASSWORD.sub(r"\g<prefix>***@", text)
    for secret in _secrets:
        redacted = redacted.replace(secret, "***")
    return redacted


class RedactSecretsFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter("%(message)s"))
_handler.addFilter(RedactSecretsFilter())


def configure_logging(debug: bool):
    """
    Configures the logging system based on the debug flag.

    The handler follows the current sys.stdout so that output lands wherever
    the invoking command writes to.
    """
    _handler.stream = sys.stdout

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    if _handler not in logger.handlers:
        logger.addHandler(_handler)
