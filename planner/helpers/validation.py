import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger("validation")


class Error:
    """Validation failure carrying a localization key"""

    def __init__(self, key: str, **kwargs):
        self.key = key
        self.kwargs = kwargs

    def __repr__(self):
        return f"Error({self.key})"


type ValidatorCallable[TReturn] = (
    Callable[[Any], TReturn] | Callable[[Any, Any], TReturn]
)

type Validator = ValidatorCallable[Error | Any]


def parameters_count(callable: Callable) -> int:
    sig = inspect.signature(callable)
    return len(sig.parameters.keys())


# validators may take the dialog payload as a second argument
def call_validator_callable[TReturn](
    callable: ValidatorCallable[TReturn],
    value: Any,
    payload: Any,
) -> TReturn:
    if parameters_count(callable) == 1:
        return callable(value)  # type: ignore
    else:
        return callable(value, payload)  # type: ignore


def validate(
    value: Any,
    validators: list[Validator],
    payload: Any = None,
) -> Error | Any:
    for validator in validators:
        value = call_validator_callable(validator, value, payload)
        logger.debug(f"Calling validation. Result: {value}")
        if isinstance(value, Error):
            return value
    return value


def check(
    condition: ValidatorCallable[bool],
    key: str,
    value_func: ValidatorCallable[Any] = lambda v: v,
) -> Validator:
    def wrapper(value: Any, payload: Any) -> Error | Any:
        try:
            if not call_validator_callable(condition, value, payload):
                return Error(key)
            return call_validator_callable(value_func, value, payload)
        except (TypeError, ValueError, AttributeError):
            return Error(key)

    return wrapper


def try_get(
    converter: ValidatorCallable[Any],
    key: str = "error_invalid_value",
) -> Validator:
    def wrapper(value: Any, payload: Any) -> Error | Any:
        try:
            return call_validator_callable(converter, value, payload)
        except (TypeError, ValueError, AttributeError, KeyError):
            return Error(key)

    return wrapper


def not_empty(key: str = "error_empty") -> Validator:
    return check(lambda text: text is not None and len(text.strip()) > 0, key)


def max_length(limit: int, key: str = "error_too_long") -> Validator:
    return check(lambda text: len(text) <= limit, key)
