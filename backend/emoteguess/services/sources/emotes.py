import json
import logging
from typing import List

from emoteguess.errors import EmptyInputError, InputError, NetworkError, NotFound
from emoteguess.services.game.types import Emote
from . import first_success, make_session

log = logging.getLogger(__name__)

SEVENTV_V3 = 'https://7tv.io/v3'
SEVENTV_V2 = 'https://api.7tv.app/v2'
ADAMCY_PROXY = 'https://emotes.adamcy.pl/7tv/channel'
SEVENTV_CDN = 'https://cdn.7tv.app/emote'


def cdn_url(emote_id) -> str:
    if not emote_id:
        return ''
    return f'{SEVENTV_CDN}/{emote_id}/4x'


def _url_from_urls(urls, last=True) -> str:
    if not urls:
        return ''
    item = urls[-1] if last else urls[0]
    if isinstance(item, (list, tuple)) and len(item) > 1:
        return item[1]
    if isinstance(item, dict):
        return item.get('url') or ''
    return ''


def _url_from_host(host) -> str:
    base = (host or {}).get('url') or ''
    if not base:
        return ''
    if base.startswith('//'):
        base = 'https:' + base
    return base.rstrip('/') + '/3x'


def emote_url(raw: dict) -> str:
    """Best image URL for a 7TV emote record (v2, v3 or proxy shape)."""
    return (
        _url_from_urls(raw.get('urls'))
        or raw.get('url')
        or _url_from_host(raw.get('host'))
        or _url_from_host((raw.get('data') or {}).get('host'))
        or cdn_url(raw.get('id'))
    )


def _to_emotes(records) -> List[Emote]:
    if not isinstance(records, list):
        return []
    out = []
    for raw in records:
        if not isinstance(raw, dict):
            continue
        emote = Emote(name=raw.get('name') or raw.get('code') or raw.get('alias') or 'emote', url=emote_url(raw))
        if emote.is_valid():
            out.append(emote)
    return out


class EmoteSource:
    """Fetches a channel's 7TV emotes, trying each public endpoint in turn."""

    def __init__(self, http=None, timeout: float = 8.0):
        self.http = http or make_session()
        self.timeout = timeout
        self.providers = [
            ('7tv-v3', self._from_v3),
            ('7tv-v2', self._from_v2),
            ('adamcy-proxy', self._from_proxy),
        ]

    def _get_json(self, url):
        resp = self.http.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def _from_v3(self, channel_id) -> List[Emote]:
        user = self._get_json(f'{SEVENTV_V3}/users/twitch/{channel_id}')
        if not isinstance(user, dict):
            return []
        emote_set = user.get('emote_set')
        if isinstance(emote_set, dict) and emote_set.get('emotes'):
            return _to_emotes(emote_set['emotes'])
        set_id = (emote_set or {}).get('id') if isinstance(emote_set, dict) else emote_set
        set_id = set_id or user.get('emote_set_id')
        if set_id:
            full = self._get_json(f'{SEVENTV_V3}/emote-sets/{set_id}')
            records = full.get('emotes') if isinstance(full, dict) else full
            emotes = _to_emotes(records)
            if emotes:
                return emotes
        return _to_emotes(user.get('emotes'))

    def _from_v2(self, channel_id) -> List[Emote]:
        return _to_emotes(self._get_json(f'{SEVENTV_V2}/users/{channel_id}/emotes'))

    def _from_proxy(self, channel_id) -> List[Emote]:
        records = self._get_json(f'{ADAMCY_PROXY}/{channel_id}')
        if not isinstance(records, list):
            return []
        # The proxy lists the smallest size first
        return [
            e for e in (
                Emote(name=r.get('name') or r.get('code') or 'emote',
                      url=r.get('url') or _url_from_urls(r.get('urls'), last=False) or cdn_url(r.get('id')))
                for r in records if isinstance(r, dict)
            ) if e.is_valid()
        ]

    def fetch_emotes(self, channel_id) -> List[Emote]:
        emotes, failures = first_success(self.providers, channel_id)
        if emotes:
            log.info(f"[emotes] channel_id={channel_id} count={len(emotes)}")
            return emotes
        if all(reason == 'empty result' for reason in failures.values()):
            raise NotFound('No 7TV emotes found for that channel.')
        detail = ', '.join(f'{name}: {reason}' for name, reason in failures.items())
        raise NetworkError(f'Could not fetch emotes ({detail})')


def parse_manual(payload) -> List[Emote]:
    """Emotes from a pasted JSON list.

    Items may be bare strings (used as both name and url) or objects with
    ``name``/``code``/``alias`` and ``url``/``src``/``image``.
    """
    data = payload
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise InputError(f'Invalid JSON: {exc}')
    if not isinstance(data, list):
        raise InputError('Invalid JSON: Not an array')

    collection = []
    for item in data:
        if isinstance(item, str):
            emote = Emote(name=item, url=item)
        elif isinstance(item, dict):
            emote = Emote(
                name=item.get('name') or item.get('code') or item.get('alias') or 'unknown',
                url=item.get('url') or item.get('src') or item.get('image') or '',
            )
        else:
            continue
        if emote.is_valid():
            collection.append(emote)
    if not collection:
        raise EmptyInputError('No valid emotes found')
    return collection
