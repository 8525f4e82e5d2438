"""
Operator error reporting.

Anomalies that must reach an operator but must not fail the request that
detected them (mirror write failures, data inconsistencies, unexpected
currencies, team update timeouts) go through report_error().
"""

import logging
from typing import Any, Union

logger = logging.getLogger("accounts.reporting")


def report_error(error: Union[BaseException, str], **context: Any) -> None:
    """
    Report an error to the operator channel.

    Args:
        error: The exception, or a plain message describing the anomaly
        **context: Extra key/value pairs logged alongside the error
    """
    suffix = f" {context}" if context else ""

    if isinstance(error, BaseException):
        logger.error(
            "%s: %s%s",
            type(error).__name__,
            error,
            suffix,
            exc_info=(type(error), error, error.__traceback__),
        )
    else:
        logger.error("%s%s", error, suffix)
