import logging

# Project logger (handlers are installed by logging_config)
logger = logging.getLogger("tunebacker")


def log_info(message: str) -> None:
    """
    Neutral information message.
    """
    logger.info("%s", message)


def log_step(message: str) -> None:
    """
    Action step / ongoing work.
    """
    logger.info("→ %s", message)


def log_success(message: str) -> None:
    logger.info("✅ %s", message)


def log_warning(message: str) -> None:
    """
    Non-fatal problem (rejected callback, expired nonce, ...).
    """
    logger.warning("⚠️ %s", message)


def log_error(message: str) -> None:
    """
    Failure surfaced to the caller.
    """
    logger.error("❌ %s", message)


def mask(value: str | None, visible: int = 4) -> str:
    """
    Shorten a secret-ish value (nonce, token, user id) for log lines.

    Example:
      mask("abcdef123456") -> "abcd…"
    """
    if not value:
        return "<none>"
    if len(value) <= visible:
        return "…"
    return f"{value[:visible]}…"
