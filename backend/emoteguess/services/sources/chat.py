"""Twitch chat feed over IRC.

Reads a channel anonymously (``justinfanNNNNN``) unless announcer
credentials are supplied, in which case the same connection can also post
winner announcements.
"""

import logging
import random
import socket
import ssl
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from emoteguess.services.game.types import CHAT, GuessAttempt

log = logging.getLogger(__name__)

DEFAULT_PREFIXES = ('!guess',)
_TAG_ESCAPES = {'\\s': ' ', '\\:': ';', '\\\\': '\\', '\\r': '\r', '\\n': '\n'}


@dataclass
class IrcMessage:
    command: str
    params: List[str] = field(default_factory=list)
    trailing: Optional[str] = None
    prefix: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def nick(self) -> str:
        return (self.prefix or '').split('!', 1)[0]


@dataclass(frozen=True)
class ChatMessage:
    sender_id: str
    sender_display_name: str
    text: str
    channel: str = ''

    def to_dict(self):
        return {
            'sender_id': self.sender_id,
            'sender': self.sender_display_name,
            'text': self.text,
            'channel': self.channel,
        }


def _unescape_tag(value: str) -> str:
    out, i = [], 0
    while i < len(value):
        pair = value[i:i + 2]
        if pair in _TAG_ESCAPES:
            out.append(_TAG_ESCAPES[pair])
            i += 2
        else:
            out.append(value[i])
            i += 1
    return ''.join(out)


def parse_irc_line(line: str) -> Optional[IrcMessage]:
    line = line.rstrip('\r\n')
    if not line:
        return None
    tags = {}
    if line.startswith('@'):
        raw_tags, _, line = line[1:].partition(' ')
        for item in raw_tags.split(';'):
            key, _, value = item.partition('=')
            tags[key] = _unescape_tag(value)
    prefix = None
    if line.startswith(':'):
        prefix, _, line = line[1:].partition(' ')
    trailing = None
    if line.startswith(':'):
        trailing, line = line[1:], ''
    elif ' :' in line:
        line, trailing = line.split(' :', 1)
    parts = line.split()
    if not parts:
        return None
    return IrcMessage(command=parts[0].upper(), params=parts[1:], trailing=trailing, prefix=prefix, tags=tags)


def chat_message_from_irc(msg: IrcMessage) -> Optional[ChatMessage]:
    if msg.command != 'PRIVMSG':
        return None
    nick = msg.nick
    channel = msg.params[0].lstrip('#') if msg.params else ''
    return ChatMessage(
        sender_id=msg.tags.get('user-id') or nick,
        sender_display_name=msg.tags.get('display-name') or nick,
        text=msg.trailing or '',
        channel=channel,
    )


def extract_guess(text: str, prefixes: Sequence[str] = DEFAULT_PREFIXES) -> str:
    """The guess carried by a chat line: verbatim, or what follows a command prefix."""
    stripped = (text or '').strip()
    lowered = stripped.lower()
    for prefix in prefixes:
        prefix = prefix.strip().lower()
        if not prefix:
            continue
        if lowered == prefix:
            return ''
        if lowered.startswith(prefix) and stripped[len(prefix)].isspace():
            return stripped[len(prefix):].strip()
    return stripped


def to_attempt(message: ChatMessage, prefixes: Sequence[str] = DEFAULT_PREFIXES) -> GuessAttempt:
    return GuessAttempt(
        guesser_id=message.sender_display_name or message.sender_id,
        raw_text=extract_guess(message.text, prefixes),
        source=CHAT,
    )


class IrcConnection:
    """One socket to the chat server, bound to one channel."""

    def __init__(self, sock, channel: str, nick: str, password: str):
        self.sock = sock
        self.channel = channel
        self.nick = nick
        self.password = password
        self.closed = False
        self.joined = False
        self._send_lock = threading.Lock()

    def send_line(self, line: str) -> None:
        with self._send_lock:
            self.sock.sendall((line + '\r\n').encode('utf-8'))

    def login(self) -> None:
        self.send_line('CAP REQ :twitch.tv/tags')
        self.send_line(f'PASS {self.password}')
        self.send_line(f'NICK {self.nick}')

    def lines(self) -> Iterator[str]:
        partial = b''
        while not self.closed:
            received = self.sock.recv(4096)
            if not received:
                return
            partial += received
            *complete, partial = partial.split(b'\r\n')
            for raw in complete:
                yield raw.decode('utf-8', errors='replace')

    def messages(self) -> Iterator[ChatMessage]:
        for line in self.lines():
            msg = parse_irc_line(line)
            if msg is None:
                continue
            if msg.command == 'PING':
                self.send_line(f'PONG :{msg.trailing or "tmi.twitch.tv"}')
            elif msg.command == '001':
                self.send_line(f'JOIN #{self.channel}')
            elif msg.command == 'JOIN' and msg.nick == self.nick:
                self.joined = True
                log.info(f"[chat] joined channel={self.channel}")
            elif msg.command == 'NOTICE':
                log.info(f"[chat-notice] channel={self.channel} {msg.trailing}")
            elif msg.command == 'RECONNECT':
                log.info(f"[chat] server requested reconnect channel={self.channel}")
                return
            else:
                chat = chat_message_from_irc(msg)
                if chat is not None:
                    yield chat

    def close(self) -> None:
        self.closed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()


def _spawn_thread(fn, *args):
    thread = threading.Thread(target=fn, args=args, daemon=True)
    thread.start()
    return thread


class TwitchChat:
    """Chat ingestion adapter: ``connect``/``disconnect`` plus message callbacks.

    Only one connection is live at a time; connecting to another channel
    closes the previous socket first so no stale feed keeps delivering
    guesses.
    """

    def __init__(self, host='irc.chat.twitch.tv', port=6697, spawn: Callable = None,
                 credentials: Optional[dict] = None, connect_socket: Callable = None, timeout: float = 10.0,
                 tls: bool = True, ssl_context: Optional[ssl.SSLContext] = None):
        self.host = host
        self.port = port
        self.spawn = spawn or _spawn_thread
        self.credentials = credentials
        self.connect_socket = connect_socket or socket.create_connection
        self.timeout = timeout
        self.tls = tls
        self.ssl_context = ssl_context
        self._conn: Optional[IrcConnection] = None
        self._message_handlers: List[Callable[[ChatMessage], None]] = []
        self._drop_handlers: List[Callable[[str], None]] = []

    @property
    def channel(self) -> Optional[str]:
        return self._conn.channel if self._conn else None

    @property
    def connected(self) -> bool:
        return self._conn is not None and not self._conn.closed

    @property
    def can_send(self) -> bool:
        return self.connected and bool(self.credentials)

    def on_message(self, handler: Callable[[ChatMessage], None]) -> None:
        self._message_handlers.append(handler)

    def on_drop(self, handler: Callable[[str], None]) -> None:
        self._drop_handlers.append(handler)

    def _login_identity(self):
        creds = self.credentials or {}
        if creds.get('nick') and creds.get('token'):
            token = creds['token']
            if not token.startswith('oauth:'):
                token = 'oauth:' + token
            return creds['nick'].lower(), token
        return 'justinfan%i' % random.randint(10000, 99999), 'SCHMOOPIIE'

    def open(self, channel: str) -> IrcConnection:
        """Dial and log in, without starting the reader."""
        self.disconnect()
        channel = channel.strip().lstrip('#').lower()
        nick, password = self._login_identity()
        sock = self.connect_socket((self.host, self.port), self.timeout)
        if self.tls:
            # PASS carries the announcer token
            context = self.ssl_context or ssl.create_default_context()
            sock = context.wrap_socket(sock, server_hostname=self.host)
        # Reads block until the next line or until disconnect() closes the socket
        sock.settimeout(None)
        conn = IrcConnection(sock, channel, nick, password)
        conn.login()
        self._conn = conn
        log.info(f"[chat] connecting channel={channel} nick={nick}")
        return conn

    def connect(self, channel: str) -> None:
        conn = self.open(channel)
        self.spawn(self._pump, conn)

    def messages(self) -> Iterator[ChatMessage]:
        """Lazy feed of the current connection; ends when it is closed or dropped."""
        if self._conn is None:
            return iter(())
        return self._conn.messages()

    def _pump(self, conn: IrcConnection) -> None:
        reason = 'connection closed by server'
        try:
            for message in conn.messages():
                if conn is not self._conn:
                    break
                for handler in list(self._message_handlers):
                    handler(message)
        except OSError as exc:
            reason = str(exc) or exc.__class__.__name__
        if conn.closed or conn is not self._conn:
            return
        log.warning(f"[chat-drop] channel={conn.channel} reason={reason}")
        conn.close()
        for handler in list(self._drop_handlers):
            handler(reason)

    def send(self, text: str) -> bool:
        if not self.can_send:
            return False
        try:
            self._conn.send_line(f'PRIVMSG #{self._conn.channel} :{text}')
        except OSError as exc:
            log.warning(f"[chat-send-failed] channel={self._conn.channel} error={exc}")
            return False
        return True

    def disconnect(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None and not conn.closed:
            log.info(f"[chat] disconnecting channel={conn.channel}")
            conn.close()
