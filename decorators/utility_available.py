from functools import wraps
import shutil

from errors import UtilityNotFoundError

def check_utility_available(*utility_names):
    """
    Decorator to check that every required utility is available in the system PATH.
    Raises UtilityNotFoundError naming the first missing one.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for utility_name in utility_names:
                if not shutil.which(utility_name):
                    self._logger.error(f"{utility_name} utility not found")
                    raise UtilityNotFoundError(f"{utility_name} utility not found in PATH. Please install it.")
            return func(self, *args, **kwargs)
        return wrapper
    return decorator
