"""Error taxonomy for the game.

None of these are fatal: routes turn them into a status message and the
current session stays as it was.
"""


class EmoteGuessError(Exception):
    """Base class for recoverable game errors."""

    status_code = 400


class InputError(EmoteGuessError):
    """Malformed user input (bad manual JSON, empty channel name...)."""


class EmptyInputError(InputError):
    """An emote list with no usable items."""


class NetworkError(EmoteGuessError):
    """A third-party lookup failed or returned garbage."""

    status_code = 502


class NotFound(NetworkError):
    """Every provider answered but none had emotes for the channel."""

    status_code = 404


class ResolutionError(EmoteGuessError):
    """A channel name could not be resolved to a Twitch id."""

    status_code = 502


class PersistenceError(EmoteGuessError):
    status_code = 500
