# engine/errors.py

class LogscopeError(Exception):
    pass


class MissingRequiredInput(LogscopeError):
    pass


class InvalidTimeRange(LogscopeError):
    pass
