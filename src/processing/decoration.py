"""Decorators for pipeline steps with automatic validation."""
import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any

from memory_canon import MemoryData
from memory_canon.data import validate_value

logger = logging.getLogger(__name__)

# Memory data containers that can be validated
MEMORY_CONTAINERS = MemoryData.field_names()


def step(
    *,
    validate_input: bool = True,
    validate_output: bool = False,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator for pipeline steps with automatic validation.

    Parameters and returned keys named like a :class:`MemoryData`
    container (media, home, days, runs, drafts, selections) are validated
    against the container's declared type. Other parameters pass through.

    When a ``memory_data`` keyword is given, the returned containers are
    written back to it so later steps can read them.

    Args:
        validate_input: If True, validate inputs that match container names.
        validate_output: If True, validate returned containers.

    Example:
        >>> @step(validate_output=True)
        ... def detect_runs(
        ...     days: dict[str, DaySummary], home: HomeDescriptor
        ... ) -> dict[str, list[list[str]]]:
        ...     return {"runs": RunDetector().detect(days, home)}

    Returns:
        Decorated function with validation
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            memory_data = kwargs.pop("memory_data", None)
            check_input = kwargs.pop("validate_input", validate_input)
            check_output = kwargs.pop("validate_output", validate_output)

            if check_input:
                _validate_inputs(func, args, kwargs)

            result = func(*args, **kwargs)

            if isinstance(result, dict):
                if check_output:
                    _validate_outputs(result, func.__name__)
                if memory_data is not None:
                    for key, value in result.items():
                        if key in MEMORY_CONTAINERS:
                            setattr(memory_data, key, value)
            elif check_output and result is not None:
                logger.warning(
                    "Step '%s' returns %s - cannot auto-validate. "
                    "Return a dict keyed by container names instead.",
                    func.__name__,
                    type(result).__name__,
                )

            return result

        return wrapper

    return decorator


def _validate_inputs(func: Callable, args: tuple, kwargs: dict) -> None:
    """Validate input parameters that are memory data containers."""
    bound = inspect.signature(func).bind(*args, **kwargs)
    bound.apply_defaults()

    for name, value in bound.arguments.items():
        if name not in MEMORY_CONTAINERS or value is None:
            continue
        logger.debug("Validating input '%s' for step '%s'", name, func.__name__)
        validate_value(name, value)


def _validate_outputs(result: dict, func_name: str) -> None:
    """Validate outputs in dict format."""
    for name, value in result.items():
        if name not in MEMORY_CONTAINERS:
            continue
        logger.debug("Validating output '%s' from step '%s'", name, func_name)
        validate_value(name, value)
