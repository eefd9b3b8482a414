from loguru import logger


def setup_logger(log_file='acceptance_timer.log'):
    """Routes loguru output (acceptance events) to a rotating file and returns the logger."""
    logger.remove()
    logger.add(log_file, rotation="10 MB", enqueue=True, format="{time} {level} [{extra[symbol]}] {message}")
    logger.configure(extra={"symbol": "-"})
    return logger
