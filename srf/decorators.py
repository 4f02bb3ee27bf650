import functools
import time

from srf.utils import get_logger


def time_func(func=None, *, num_decimals: int = 6):
    """
    Logs the wall time of the decorated callable.

    Uses ``self.logger`` when decorating a method of an object that has one,
    a ``logger`` keyword argument otherwise, and the module logger as a last resort.
    """
    if func is None:
        return functools.partial(time_func, num_decimals=num_decimals)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time

        self_ = args[0] if args else None
        if self_ is not None and hasattr(self_, "logger") and hasattr(self_.logger, "info"):
            logger = self_.logger
        elif kwargs.get("logger") is not None and hasattr(kwargs["logger"], "info"):
            logger = kwargs["logger"]
        else:
            logger = get_logger(func.__module__)

        logger.info(f"Function '{func.__qualname__}' executed in {elapsed:.{num_decimals}f} seconds.")
        return result

    return wrapper
