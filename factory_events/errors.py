"""Exceptions raised across the store and service boundaries."""


class StoreError(Exception):
    """A store backend failed to read or write a record."""


class InvalidRangeError(ValueError):
    """A query window boundary could not be parsed as an instant."""

    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f"{name} is not a valid ISO-8601 instant: {value!r}")
