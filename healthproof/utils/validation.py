import re
from healthproof.errors import ValidationError

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def parse_choice(value, choices, field, default=None):
    """Empty/absent -> default; anything outside `choices` is rejected."""
    if value is None or value == '':
        return default
    if value not in choices:
        raise ValidationError(f'Invalid {field}: expected one of {", ".join(choices)}')
    return value


def parse_int(value, field, default, minimum=None, maximum=None):
    if value is None or value == '':
        return default
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f'{field} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer')
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be >= {minimum}')
    if maximum is not None and number > maximum:
        raise ValidationError(f'{field} must be <= {maximum}')
    return number


def require_string(data, field, min_len=1, max_len=None, optional=False):
    value = data.get(field)
    if value is None:
        if optional:
            return None
        raise ValidationError(f'{field} is required')
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string')
    value = value.strip()
    if optional and not value:
        return None
    if len(value) < min_len:
        raise ValidationError(f'{field} must be at least {min_len} characters')
    if max_len is not None and len(value) > max_len:
        raise ValidationError(f'{field} must be at most {max_len} characters')
    return value


def json_body(request):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('JSON body required')
    return data
