# coding=utf-8

from functools import wraps
import logging
import time


logger = logging.getLogger(__name__)


def timer(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = f(*args, **kwargs)
        total_time = time.time() - start_time
        logger.debug("Total time for %s: %.2f s", f.__name__, total_time)
        return result

    return wrapper
