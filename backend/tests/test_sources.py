import pytest
import requests

from emoteguess.errors import EmptyInputError, InputError, NetworkError, NotFound, ResolutionError
from emoteguess.services.game.types import Emote
from emoteguess.services.sources.emotes import EmoteSource, emote_url, parse_manual
from emoteguess.services.sources.identity import IdentityResolver


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=''):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')

    def json(self):
        if self._json is None:
            raise ValueError('no json')
        return self._json


class FakeHttp:
    """Maps URL (plus sorted query string) to a response or an exception."""

    def __init__(self, routes):
        self.routes = routes
        self.requested = []

    def get(self, url, params=None, timeout=None, headers=None):
        if params:
            url = url + '?' + '&'.join(f'{k}={v}' for k, v in sorted(params.items()))
        self.requested.append(url)
        outcome = self.routes.get(url, FakeResponse(404))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


# ---- manual payloads ----

def test_manual_accepts_strings_and_objects():
    emotes = parse_manual('["https://x/a.png", {"name": "pog", "url": "u1"}, '
                          '{"code": "kappa", "src": "u2"}, {"name": "lul", "image": "u3"}]')
    assert emotes == [
        Emote('https://x/a.png', 'https://x/a.png'),
        Emote('pog', 'u1'),
        Emote('kappa', 'u2'),
        Emote('lul', 'u3'),
    ]


def test_manual_names_missing_name_unknown():
    assert parse_manual([{'url': 'u1'}]) == [Emote('unknown', 'u1')]


def test_manual_drops_items_without_url():
    assert parse_manual([{'name': 'pog'}, {'name': 'kappa', 'url': 'b'}, 42, None]) == [Emote('kappa', 'b')]


def test_manual_rejects_payload_without_any_url():
    with pytest.raises(InputError):
        parse_manual('[{"name": "pog"}, {"name": "kappa", "id": "1"}]')


def test_manual_rejects_bad_json_and_non_arrays():
    with pytest.raises(InputError, match='Invalid JSON'):
        parse_manual('[{"name": ')
    with pytest.raises(InputError, match='Not an array'):
        parse_manual('{"name": "pog", "url": "a"}')
    with pytest.raises(EmptyInputError):
        parse_manual('[]')


# ---- 7TV ----

def test_emote_url_shapes():
    assert emote_url({'urls': [['1', 'small'], ['4', 'big']]}) == 'big'
    assert emote_url({'url': 'direct'}) == 'direct'
    assert emote_url({'data': {'host': {'url': '//cdn.7tv.app/emote/abc'}}}) == 'https://cdn.7tv.app/emote/abc/3x'
    assert emote_url({'id': 'abc'}) == 'https://cdn.7tv.app/emote/abc/4x'


def test_v3_inline_emote_set():
    http = FakeHttp({
        'https://7tv.io/v3/users/twitch/42': FakeResponse(json_data={
            'emote_set': {'id': 'set1', 'emotes': [
                {'name': 'pog', 'data': {'host': {'url': '//cdn.7tv.app/emote/1'}}},
                {'name': 'kappa', 'id': '2'},
            ]},
        }),
    })
    emotes = EmoteSource(http=http).fetch_emotes('42')
    assert emotes == [
        Emote('pog', 'https://cdn.7tv.app/emote/1/3x'),
        Emote('kappa', 'https://cdn.7tv.app/emote/2/4x'),
    ]


def test_v3_follows_emote_set_id():
    http = FakeHttp({
        'https://7tv.io/v3/users/twitch/42': FakeResponse(json_data={'emote_set_id': 'set9'}),
        'https://7tv.io/v3/emote-sets/set9': FakeResponse(json_data={'emotes': [{'name': 'lul', 'id': '3'}]}),
    })
    assert EmoteSource(http=http).fetch_emotes('42') == [Emote('lul', 'https://cdn.7tv.app/emote/3/4x')]


def test_falls_back_to_v2_then_proxy():
    http = FakeHttp({
        'https://7tv.io/v3/users/twitch/42': requests.ConnectionError('boom'),
        'https://api.7tv.app/v2/users/42/emotes': FakeResponse(500),
        'https://emotes.adamcy.pl/7tv/channel/42': FakeResponse(json_data=[
            {'name': 'pog', 'urls': [{'size': '1x', 'url': 'small'}, {'size': '4x', 'url': 'big'}]},
        ]),
    })
    assert EmoteSource(http=http).fetch_emotes('42') == [Emote('pog', 'small')]
    assert len(http.requested) == 3


def test_not_found_when_every_provider_is_empty():
    with pytest.raises(NotFound):
        EmoteSource(http=FakeHttp({})).fetch_emotes('42')


def test_network_error_when_providers_fail():
    http = FakeHttp({
        'https://7tv.io/v3/users/twitch/42': requests.Timeout('slow'),
        'https://api.7tv.app/v2/users/42/emotes': FakeResponse(503),
    })
    with pytest.raises(NetworkError) as excinfo:
        EmoteSource(http=http).fetch_emotes('42')
    assert not isinstance(excinfo.value, NotFound)


# ---- identity ----

def test_resolve_prefers_decapi():
    http = FakeHttp({'https://decapi.me/twitch/id/xqc': FakeResponse(text='71092938\n')})
    assert IdentityResolver(http=http).resolve_channel_id('#XQC') == '71092938'
    assert http.requested == ['https://decapi.me/twitch/id/xqc']


def test_resolve_falls_back_to_ivr():
    http = FakeHttp({
        'https://decapi.me/twitch/id/xqc': FakeResponse(text='User not found: xqc'),
        'https://api.ivr.fi/v2/twitch/user?login=xqc': FakeResponse(json_data=[{'id': '71092938'}]),
    })
    assert IdentityResolver(http=http).resolve_channel_id('xqc') == '71092938'


def test_resolve_uses_helix_only_when_configured():
    http = FakeHttp({
        'https://api.twitch.tv/helix/users?login=xqc': FakeResponse(json_data={'data': [{'id': '71092938'}]}),
    })
    with pytest.raises(ResolutionError):
        IdentityResolver(http=http).resolve_channel_id('xqc')
    resolver = IdentityResolver(http=http, client_id='cid', app_token='tok')
    assert resolver.resolve_channel_id('xqc') == '71092938'


def test_resolve_fails_when_all_providers_fail():
    http = FakeHttp({'https://decapi.me/twitch/id/xqc': requests.ConnectionError('down')})
    with pytest.raises(ResolutionError):
        IdentityResolver(http=http).resolve_channel_id('xqc')
    with pytest.raises(ResolutionError):
        IdentityResolver(http=http).resolve_channel_id('  ')
