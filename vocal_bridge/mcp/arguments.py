"""
Argument extraction helpers for tool handlers.

Input schemas are advertised to clients but not enforced by the registry;
handlers pull what they need through these and fail with InvalidArgument.
"""

from typing import Any, Dict, List, Optional

from vocal_bridge.core.errors import InvalidArgument


def require_str(args: Dict[str, Any], key: str, *, allow_empty: bool = False) -> str:
    value = args.get(key)
    if not isinstance(value, str):
        raise InvalidArgument(key, "required string")
    if not allow_empty and not value.strip():
        raise InvalidArgument(key, "must not be empty")
    return value


def optional_str(args: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = args.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidArgument(key, "expected string")
    return value


def require_int(args: Dict[str, Any], key: str) -> int:
    value = args.get(key)
    if value is None:
        raise InvalidArgument(key, "required integer")
    return _coerce_int(key, value)


def optional_int(
    args: Dict[str, Any],
    key: str,
    default: Optional[int] = None,
    *,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> Optional[int]:
    value = args.get(key)
    if value is None:
        return default
    number = _coerce_int(key, value)
    if minimum is not None and number < minimum:
        raise InvalidArgument(key, f"must be >= {minimum}")
    if maximum is not None and number > maximum:
        raise InvalidArgument(key, f"must be <= {maximum}")
    return number


def _coerce_int(key: str, value: Any) -> int:
    # bool is an int subclass; voice clients occasionally send "10".
    if isinstance(value, bool):
        raise InvalidArgument(key, "expected integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise InvalidArgument(key, "expected integer")


def optional_bool(args: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = args.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InvalidArgument(key, "expected boolean")
    return value


def optional_dict(args: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise InvalidArgument(key, "expected object")
    return value


def require_dict(args: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = optional_dict(args, key)
    if value is None:
        raise InvalidArgument(key, "required object")
    return value


def optional_list(args: Dict[str, Any], key: str) -> Optional[List[Any]]:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise InvalidArgument(key, "expected array")
    return value


def require_list(args: Dict[str, Any], key: str) -> List[Any]:
    value = optional_list(args, key)
    if not value:
        raise InvalidArgument(key, "required non-empty array")
    return value
