def str_to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    value = str(value).strip().lower()
    if value in ('1', 'true', 'yes', 'y', 'on'):
        return True
    if value in ('0', 'false', 'no', 'n', 'off', ''):
        return False
    raise ValueError(f'Invalid boolean value: {value}')


def utc_isoformat(timestamp) -> str:
    # ISO-8601 UTC string with millisecond precision and a "Z" suffix (naive datetimes are assumed UTC)
    return timestamp.replace(tzinfo=None).isoformat(timespec='milliseconds') + 'Z'


def pagination_args(args, default_take: int, max_take: int):
    """ Reads skip/take query parameters, falling back to defaults on missing or malformed values """
    try:
        skip = max(int(args.get('skip', 0)), 0)
    except ValueError:
        skip = 0
    try:
        take = int(args.get('take', default_take))
    except ValueError:
        take = default_take
    if take <= 0:
        take = default_take
    return skip, min(take, max_take)
