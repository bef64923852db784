"""Third-party collaborators: emote providers, id lookup and the chat feed."""

import logging
from typing import Callable, Sequence, Tuple

import requests

log = logging.getLogger(__name__)

USER_AGENT = 'emoteguess/0.1'

# (name, callable) pairs tried in order
Strategy = Tuple[str, Callable]


def make_session() -> requests.Session:
    session = requests.Session()
    session.headers['User-Agent'] = USER_AGENT
    return session


def first_success(strategies: Sequence[Strategy], *args, accept=bool):
    """Run ``strategies`` in order and return the first accepted result.

    Any ``requests`` or decoding failure in one strategy is logged and the
    next one is tried. Returns ``(None, failures)`` when nothing succeeded,
    where ``failures`` maps strategy name to a short reason.
    """
    failures = {}
    for name, strategy in strategies:
        try:
            result = strategy(*args)
        except (requests.RequestException, ValueError, KeyError, TypeError, IndexError) as exc:
            log.debug(f"[fallback] strategy={name} failed: {exc}")
            failures[name] = str(exc) or exc.__class__.__name__
            continue
        if accept(result):
            log.info(f"[fallback] strategy={name} succeeded")
            return result, failures
        failures[name] = 'empty result'
    return None, failures
