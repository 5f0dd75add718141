class QuackpullError(Exception):
    """Base class for errors raised by quackpull."""


class ConfigurationError(QuackpullError, ValueError):
    """An extractor or source was configured against a schema it does not fit.

    Raised eagerly, at construction, before any query is issued.
    """


class TransientQueryError(QuackpullError):
    """The underlying range query failed.

    The cursor passed to the failed fetch is still valid, so the same fetch
    can be retried as is.
    """
