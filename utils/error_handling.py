import functools
import logging
from utils.exceptions import StepwiseMLException

def handle_engine_errors(operation_name: str, wrap_as=StepwiseMLException):
    """Decorator for consistent error handling in models and engines."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except StepwiseMLException:
                # Re-raise our custom exceptions
                raise
            except Exception as e:
                # Wrap unexpected errors
                logger = args[0].logger if args and hasattr(args[0], 'logger') else logging.getLogger()
                logger.error(f"{operation_name} failed: {e}", exc_info=True)
                raise wrap_as(f"{operation_name} failed: {str(e)}") from e
        return wrapper
    return decorator
