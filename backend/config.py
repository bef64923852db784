import os


def _flag(name, default):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///emoteguess.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Timeout for emote/identity lookups (seconds)
    HTTP_TIMEOUT_SEC = float(os.environ.get('HTTP_TIMEOUT_SEC', '8'))
    # Pause on the revealed answer before the next emote. Negative disables auto-advance.
    REVEAL_DELAY_SEC = float(os.environ.get('REVEAL_DELAY_SEC', '2'))
    # Chat feed
    CHAT_ENABLED = _flag('CHAT_ENABLED', 'true')
    CHAT_COMMAND_PREFIXES = [p for p in os.environ.get('CHAT_COMMAND_PREFIXES', '!guess').split(',') if p.strip()]
    CHAT_LOG_SIZE = int(os.environ.get('CHAT_LOG_SIZE', '50'))
    TWITCH_IRC_HOST = os.environ.get('TWITCH_IRC_HOST', 'irc.chat.twitch.tv')
    TWITCH_IRC_PORT = int(os.environ.get('TWITCH_IRC_PORT', '6697'))
    TWITCH_IRC_TLS = _flag('TWITCH_IRC_TLS', 'true')
    # Helix is only tried when both are set
    TWITCH_CLIENT_ID = os.environ.get('TWITCH_CLIENT_ID')
    TWITCH_APP_TOKEN = os.environ.get('TWITCH_APP_TOKEN')
    # Announce winners in chat when announcer credentials are stored
    ANNOUNCE_WINS = _flag('ANNOUNCE_WINS', 'true')
    # Leaderboard
    LOCAL_GUESSER_NAME = os.environ.get('LOCAL_GUESSER_NAME', 'You')
    COUNT_LOCAL_GUESSES = _flag('COUNT_LOCAL_GUESSES', 'true')
    LEADERBOARD_PER_CHANNEL = _flag('LEADERBOARD_PER_CHANNEL', 'true')
    LEADERBOARD_SIZE = int(os.environ.get('LEADERBOARD_SIZE', '10'))
