"""The single owner of the game Session.

Local guesses (HTTP/socket) and chat guesses all funnel through
``GameController.submit``, which runs under one lock: the round guard is
checked and set, then the leaderboard, then the score, before anyone else
gets a turn.
"""

import threading
import uuid
from collections import deque
from typing import Callable, Optional

from flask import current_app

from emoteguess.errors import EmoteGuessError, InputError, NetworkError, ResolutionError
from emoteguess.services import store
from emoteguess.services.sources.chat import DEFAULT_PREFIXES, ChatMessage, to_attempt
from emoteguess.services.sources.emotes import parse_manual
from . import arbiter, sequencer
from .ledger import GLOBAL_SCOPE, Ledger
from .scheduler import schedule_advance
from .types import (
    ALREADY_WON, CHAT, EMPTY_GUESS, LOCAL, MISMATCH, NO_ACTIVE_ROUND,
    GuessAttempt, Session, SequenceExhausted, Verdict,
)

EXTENSION_KEY = 'emoteguess'

_REJECTION_STATUS = {
    NO_ACTIVE_ROUND: 'Load a channel or paste emotes first.',
    EMPTY_GUESS: 'Type something to guess.',
    MISMATCH: 'Nope, try again or Skip.',
    ALREADY_WON: 'Too late, someone already got it.',
}


def normalize_channel(channel) -> str:
    login = (channel or '').strip().lstrip('#').strip().lower()
    if not login:
        raise InputError('Please enter a Twitch channel name.')
    return login


class GameController:
    def __init__(self, app, emit: Callable[[str, dict], None], emote_source=None, resolver=None,
                 chat=None, ledger: Optional[Ledger] = None, rng=None):
        self.app = app
        self.emit = emit
        self.emote_source = emote_source
        self.resolver = resolver
        self.chat = chat
        self.ledger = ledger or Ledger(app.logger)
        self.rng = rng
        self.session: Optional[Session] = None
        self.pending_token: Optional[str] = None
        self.chat_log = deque(maxlen=int(app.config.get('CHAT_LOG_SIZE', 50)))
        self._lock = threading.RLock()
        # Serializes dialing the chat feed; never taken while holding _lock
        self._chat_lock = threading.Lock()
        if chat is not None:
            chat.on_message(self._on_chat_message)
            chat.on_drop(self._on_chat_drop)

    # ---- helpers ----
    @property
    def config(self):
        return self.app.config

    @property
    def logger(self):
        return self.app.logger

    def scope_for(self, session: Optional[Session]) -> str:
        if session and session.channel_scope and self.config.get('LEADERBOARD_PER_CHANNEL', True):
            return session.channel_scope
        return GLOBAL_SCOPE

    def status(self, message: str, error: bool = False) -> None:
        if error:
            self.logger.warning(f"[status] {message}")
        else:
            self.logger.info(f"[status] {message}")
        self.emit('status', {'message': message, 'error': error})

    def _emit_round_started(self, session: Session) -> None:
        round_ = session.round
        self.emit('round_started', {
            'index': round_.index,
            'total': session.total,
            'url': round_.emote.url,
            'started_at': round_.started_at,
            'score': session.score,
        })

    def _emit_leaderboard(self, scope: str) -> None:
        self.emit('leaderboard_updated', {'scope': scope, 'entries': self.leaderboard(scope=scope)})

    def _start(self, session: Session) -> None:
        previous = self.session
        if previous is None or previous.channel_scope != session.channel_scope:
            self.chat_log.clear()
        self.session = session
        self.pending_token = None
        self.logger.info(
            f"[load] session={session.token} channel={session.channel_scope or 'manual'} emotes={session.total}"
        )
        self._emit_round_started(session)
        self._emit_leaderboard(self.scope_for(session))
        self.emit('state_update', self.state())

    # ---- loading ----
    def load_manual(self, payload) -> Session:
        try:
            emotes = parse_manual(payload)
        except InputError as exc:
            self.status(str(exc), error=True)
            raise
        with self._lock:
            session = sequencer.load(emotes, None, self.rng)
            self._start(session)
        if self.chat is not None:
            with self._chat_lock:
                # a channel load may have taken over since
                if self.session.channel_scope is None:
                    self.chat.disconnect()
        self.status(f'Loaded {session.total} emotes from pasted JSON.')
        return session

    def begin_channel_load(self, channel) -> str:
        normalize_channel(channel)
        token = uuid.uuid4().hex
        with self._lock:
            self.pending_token = token
        return token

    def load_channel(self, channel, token: Optional[str] = None) -> Optional[Session]:
        """Resolve, fetch and start a channel's emotes.

        Returns None when a newer load started while this one was in
        flight; its result is dropped.
        """
        login = normalize_channel(channel)
        token = token or self.begin_channel_load(login)
        self.status('Resolving Twitch username to ID...')
        try:
            channel_id = self.resolver.resolve_channel_id(login)
            self.status(f'Twitch ID: {channel_id}, fetching 7TV emotes...')
            emotes = self.emote_source.fetch_emotes(channel_id)
        except (ResolutionError, NetworkError) as exc:
            with self._lock:
                if self.pending_token != token:
                    self.logger.info(f"[load-stale] channel={login} discarded failure: {exc}")
                    return None
                self.pending_token = None
            self.status(f'Failed: {exc}', error=True)
            raise

        with self._lock:
            if self.pending_token != token:
                self.logger.info(f"[load-stale] channel={login} discarded {len(emotes)} emotes")
                return None
            session = sequencer.load(emotes, login, self.rng)
            self._start(session)
        self.status(f'Loaded {session.total} emotes. Good luck!')
        self._connect_chat(login, session)
        return session

    def load_channel_in_background(self, channel) -> str:
        login = normalize_channel(channel)
        token = self.begin_channel_load(login)

        def _runner(app, login_, token_):
            with app.app_context():
                try:
                    self.load_channel(login_, token_)
                except EmoteGuessError as exc:
                    # already reported to clients through a status event
                    app.logger.info(f"[load-failed] channel={login_} error={exc}")

        if self.config.get('TESTING'):
            _runner(self.app, login, token)
        else:
            from emoteguess import socketio
            socketio.start_background_task(_runner, self.app, login, token)
        return token

    def reshuffle(self) -> Session:
        with self._lock:
            if self.session is None:
                raise InputError('Nothing loaded yet.')
            session = sequencer.load(list(self.session.sequence), self.session.channel_scope, self.rng)
            self._start(session)
        self.status(f'Reshuffled {session.total} emotes.')
        return session

    # ---- chat ----
    def _connect_chat(self, login: str, session: Optional[Session] = None) -> None:
        """(Re)dial the chat feed for ``login``.

        With ``session`` given, the dial is skipped once a load for another
        channel (or a manual paste) has replaced it.
        """
        if self.chat is None or not self.config.get('CHAT_ENABLED', True):
            return
        with self._chat_lock:
            current = self.session
            if session is not None and (current is None or current.channel_scope != session.channel_scope):
                self.logger.info(f"[chat-stale] channel={login} session={session.token} replaced, not connecting")
                return
            self.chat.credentials = store.get(store.ANNOUNCER_KEY)
            try:
                self.chat.connect(login)
            except OSError as exc:
                self.logger.warning(f"[chat-connect-failed] channel={login} error={exc}")
                self.status('Could not connect to chat, local guessing only.', error=True)
                return
        self.status('Connected to chat.')

    def _on_chat_message(self, message: ChatMessage) -> None:
        with self.app.app_context():
            self.handle_chat_message(message)

    def _on_chat_drop(self, reason: str) -> None:
        with self.app.app_context():
            self.status('Chat disconnected, local guessing only.', error=True)

    def handle_chat_message(self, message: ChatMessage) -> Optional[Verdict]:
        with self._lock:
            session = self.session
            if session is None or (message.channel and message.channel != session.channel_scope):
                return None
            self.chat_log.append(message.to_dict())
            self.emit('chat_message', message.to_dict())
            prefixes = self.config.get('CHAT_COMMAND_PREFIXES') or DEFAULT_PREFIXES
            return self.submit(to_attempt(message, prefixes))

    def set_announcer(self, nick: str, token: str) -> None:
        if not (nick or '').strip() or not (token or '').strip():
            raise InputError('Both nick and token are required.')
        store.set(store.ANNOUNCER_KEY, {'nick': nick.strip(), 'token': token.strip()})
        self._reconnect_chat()

    def clear_announcer(self) -> bool:
        removed = store.delete(store.ANNOUNCER_KEY)
        self._reconnect_chat()
        return removed

    def _reconnect_chat(self) -> None:
        if self.chat is not None and self.chat.connected:
            self._connect_chat(self.chat.channel)

    def _announce(self, guesser_id: str, emote_name: str) -> None:
        if self.chat is None or not self.config.get('ANNOUNCE_WINS', True):
            return
        if self.chat.can_send:
            self.chat.send(f'{guesser_id} guessed it first: {emote_name}')

    # ---- rounds ----
    def guess_local(self, text) -> Verdict:
        name = self.config.get('LOCAL_GUESSER_NAME', 'You')
        return self.submit(GuessAttempt(guesser_id=name, raw_text=text or '', source=LOCAL))

    def submit(self, attempt: GuessAttempt) -> Verdict:
        with self._lock:
            session = self.session
            round_ = sequencer.current(session)
            verdict = arbiter.submit(attempt, round_)
            if not verdict.accepted:
                if attempt.source == LOCAL:
                    self.emit('guess_rejected', {'reason': verdict.reason, 'guess': attempt.raw_text})
                    self.status(_REJECTION_STATUS[verdict.reason], error=verdict.reason == MISMATCH)
                return verdict

            scope = self.scope_for(session)
            if attempt.source == CHAT or self.config.get('COUNT_LOCAL_GUESSES', True):
                self.ledger.record_win(attempt.guesser_id, scope)
            session.score += 1
            emote = round_.emote
            self.logger.info(
                f"[win] session={session.token} position={session.position} guesser={attempt.guesser_id} "
                f"source={attempt.source} emote={emote.name}"
            )
            self.emit('round_won', {
                'guesser_id': attempt.guesser_id,
                'emote_name': emote.name,
                'url': emote.url,
                'source': attempt.source,
                'score': session.score,
            })
            self.status(f'{emote.name} first was {attempt.guesser_id}')
            self._emit_leaderboard(scope)
            self._announce(attempt.guesser_id, emote.name)
            token, position = session.token, session.position
        schedule_advance(self.app, self, token, position)
        return verdict

    def _skip_locked(self, round_) -> bool:
        if not arbiter.force_lock(round_):
            return False
        self.emit('round_skipped', {'emote_name': round_.emote.name, 'url': round_.emote.url})
        self.status(f'Skipped. Answer: {round_.emote.name}')
        return True

    def skip(self) -> bool:
        with self._lock:
            session = self.session
            if not self._skip_locked(sequencer.current(session)):
                return False
            token, position = session.token, session.position
        schedule_advance(self.app, self, token, position)
        return True

    def advance(self):
        with self._lock:
            session = self.session
            if session is None:
                return None
            if session.round is not None and not session.round.locked:
                self._skip_locked(session.round)
            result = sequencer.advance(session)
            if isinstance(result, SequenceExhausted):
                self.emit('sequence_exhausted', {'final_score': result.final_score, 'total': result.total})
                self.status(f'Done! Final score: {result.final_score}/{result.total}')
            else:
                self._emit_round_started(session)
                self.status(f'Emote {session.position + 1} of {session.total}, guess the name!')
            self.emit('state_update', self.state())
            return result

    def advance_if_current(self, token: str, position: int) -> bool:
        with self._lock:
            session = self.session
            if session is None or session.finished or session.token != token or session.position != position:
                return False
            self.advance()
            return True

    # ---- leaderboard / state ----
    def leaderboard(self, n: Optional[int] = None, scope: Optional[str] = None):
        scope = scope or self.scope_for(self.session)
        if n is None:
            n = int(self.config.get('LEADERBOARD_SIZE', 10))
        return [entry.to_dict() for entry in self.ledger.top_n(scope, n)]

    def clear_leaderboard(self, scope: Optional[str] = None) -> int:
        scope = scope or self.scope_for(self.session)
        deleted = self.ledger.clear(scope)
        self._emit_leaderboard(scope)
        return deleted

    def state(self):
        session = self.session
        return {
            'session': session.to_dict() if session else None,
            'loading': self.pending_token is not None,
            'scope': self.scope_for(session),
            'chat': {
                'channel': self.chat.channel if self.chat else None,
                'connected': bool(self.chat and self.chat.connected),
                'announcer': bool(self.chat and self.chat.can_send),
            },
            'chat_log': list(self.chat_log),
        }


def init_controller(app, emit=None, **collaborators) -> GameController:
    """Build the app's controller with the real collaborators unless given."""
    from emoteguess import socketio
    from emoteguess.services.sources.chat import TwitchChat
    from emoteguess.services.sources.emotes import EmoteSource
    from emoteguess.services.sources.identity import IdentityResolver

    timeout = float(app.config.get('HTTP_TIMEOUT_SEC', 8))
    if 'emote_source' not in collaborators:
        collaborators['emote_source'] = EmoteSource(timeout=timeout)
    if 'resolver' not in collaborators:
        collaborators['resolver'] = IdentityResolver(
            timeout=timeout,
            client_id=app.config.get('TWITCH_CLIENT_ID'),
            app_token=app.config.get('TWITCH_APP_TOKEN'),
        )
    if 'chat' not in collaborators:
        collaborators['chat'] = TwitchChat(
            host=app.config.get('TWITCH_IRC_HOST', 'irc.chat.twitch.tv'),
            port=int(app.config.get('TWITCH_IRC_PORT', 6697)),
            tls=app.config.get('TWITCH_IRC_TLS', True),
            spawn=socketio.start_background_task,
        )
    if emit is None:
        def emit(event, payload):
            socketio.emit(event, payload, namespace='/ws')
    controller = GameController(app, emit, **collaborators)
    app.extensions[EXTENSION_KEY] = controller
    return controller


def get_controller() -> GameController:
    return current_app.extensions[EXTENSION_KEY]
