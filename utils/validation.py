# utils/validation.py
from errors import InvalidArgument


def json_object(request):
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgument("Expected a JSON object")
    return data


def optional_str(data, key, *aliases):
    """Return ``data[key]`` (or the first alias present) as a string or None."""
    for name in (key,) + aliases:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise InvalidArgument("'%s' must be a string" % name)
        return value
    return None


def required_str(data, key, *aliases, message=None):
    value = optional_str(data, key, *aliases)
    if not value:
        raise InvalidArgument(message or "'%s' is required" % key)
    return value
