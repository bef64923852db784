import logging
from urllib.parse import quote

from emoteguess.errors import ResolutionError
from . import first_success, make_session

log = logging.getLogger(__name__)

DECAPI = 'https://decapi.me/twitch/id'
IVR = 'https://api.ivr.fi/v2/twitch/user'
HELIX = 'https://api.twitch.tv/helix/users'


def _id_from_record(record):
    if isinstance(record, list):
        record = record[0] if record else None
    if not isinstance(record, dict):
        return None
    value = record.get('id') or record.get('id_str') or record.get('user_id')
    return str(value) if value else None


class IdentityResolver:
    """Resolves a Twitch login to its numeric id via ranked public lookups."""

    def __init__(self, http=None, timeout: float = 8.0, client_id=None, app_token=None):
        self.http = http or make_session()
        self.timeout = timeout
        self.client_id = client_id
        self.app_token = app_token
        self.providers = [('decapi', self._from_decapi), ('ivr', self._from_ivr)]
        if client_id and app_token:
            self.providers.append(('helix', self._from_helix))

    def _from_decapi(self, login):
        resp = self.http.get(f'{DECAPI}/{quote(login)}', timeout=self.timeout)
        if not resp.ok:
            return None
        text = resp.text.strip()
        # decapi answers 200 with an error sentence for unknown users
        return text if text.isdigit() else None

    def _from_ivr(self, login):
        resp = self.http.get(IVR, params={'login': login}, timeout=self.timeout)
        if not resp.ok:
            return None
        return _id_from_record(resp.json())

    def _from_helix(self, login):
        headers = {'Client-Id': self.client_id, 'Authorization': f'Bearer {self.app_token}'}
        resp = self.http.get(HELIX, params={'login': login}, headers=headers, timeout=self.timeout)
        if not resp.ok:
            return None
        return _id_from_record((resp.json() or {}).get('data'))

    def resolve_channel_id(self, login: str) -> str:
        login = (login or '').strip().lstrip('#').lower()
        if not login:
            raise ResolutionError('Channel name is empty')
        channel_id, failures = first_success(self.providers, login)
        if channel_id:
            log.info(f"[resolve] login={login} id={channel_id}")
            return channel_id
        log.warning(f"[resolve-failed] login={login} failures={failures}")
        raise ResolutionError(
            'Could not resolve Twitch ID. Public lookup endpoints failed (try pasting emote JSON manually).'
        )
