"""
Component logging helpers.

All engine modules log through the stdlib logging tree under the
``esl_drift`` namespace. This module provides a factory that returns leveled
log functions bound to a component tag, so call sites stay one-liners and
every record carries the component plus any structured key/value payload.

Usage:
    from shared.log import create_logger
    log_debug, log_info, log_warn, log_error = create_logger("Scheduler")
    log_info("Verifying 3 stores", store_count=3)
    # -> {"level": "INFO", "name": "esl_drift.Scheduler", "msg": "Verifying 3 stores",
    #     "component": "Scheduler", "store_count": 3}
"""

import logging

ROOT_LOGGER_NAME = "esl_drift"


def create_logger(component: str = ""):
    """Create log functions for a component.

    Args:
        component: Component tag. Becomes the logger name suffix
                   ("esl_drift.<component>") and the ``component`` field
                   on every record.

    Returns:
        Tuple of (log_debug, log_info, log_warn, log_error) functions. Each
        takes a message and optional keyword fields for the structured payload.
    """
    name = f"{ROOT_LOGGER_NAME}.{component}" if component else ROOT_LOGGER_NAME
    logger = logging.getLogger(name)

    def _emit(level: int, msg: str, fields: dict) -> None:
        extra = {"component": component or ROOT_LOGGER_NAME}
        extra.update(fields)
        logger.log(level, msg, extra=extra)

    def log_debug(msg, **fields): _emit(logging.DEBUG, msg, fields)
    def log_info(msg, **fields): _emit(logging.INFO, msg, fields)
    def log_warn(msg, **fields): _emit(logging.WARNING, msg, fields)
    def log_error(msg, **fields): _emit(logging.ERROR, msg, fields)

    return log_debug, log_info, log_warn, log_error
