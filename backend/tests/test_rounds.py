import random
import threading
from collections import Counter

import pytest

from emoteguess.errors import EmptyInputError, InputError
from emoteguess.services.game import arbiter, guard, sequencer
from emoteguess.services.game.normalizer import normalize, same_name
from emoteguess.services.game.types import (
    ALREADY_WON, CHAT, EMPTY_GUESS, MISMATCH, NO_ACTIVE_ROUND,
    Emote, GuessAttempt, Round, SequenceExhausted,
)


EMOTES = [Emote('pog', 'a'), Emote('kappa', 'b')]


@pytest.mark.parametrize('raw, expected', [
    ('  POG ', 'pog'),
    ('KEKW', 'kekw'),
    ('\tmonkaS\n', 'monkas'),
    ('', ''),
    ('   ', ''),
    (None, ''),
])
def test_normalize(raw, expected):
    assert normalize(raw) == expected


@pytest.mark.parametrize('raw', ['  Pepe Laugh ', 'ÄÖÜ', 'x', '', None, 'OMEGALUL\r\n'])
def test_normalize_is_idempotent(raw):
    assert normalize(normalize(raw)) == normalize(raw)


def test_same_name_requires_exact_canonical_match():
    assert same_name('POG ', 'pog')
    assert not same_name('pogg', 'pog')
    assert not same_name('po', 'pog')
    assert not same_name('', '')


def test_load_is_a_permutation_starting_at_zero():
    emotes = [Emote(f'e{i}', f'u{i}') for i in range(20)] + [Emote('e0', 'u0')]
    session = sequencer.load(emotes, 'xqc', random.Random(3))
    assert Counter(session.sequence) == Counter(emotes)
    assert session.position == 0
    assert session.score == 0
    assert session.channel_scope == 'xqc'
    assert session.round.emote == session.sequence[0]
    assert session.round.locked is False


def test_load_does_not_shuffle_callers_list():
    emotes = [Emote(f'e{i}', f'u{i}') for i in range(10)]
    before = list(emotes)
    sequencer.load(emotes, None, random.Random(1))
    assert emotes == before


def test_load_drops_invalid_items():
    session = sequencer.load([Emote('', 'a'), Emote('pog', ''), 'junk', Emote('kappa', 'b')])
    assert session.sequence == [Emote('kappa', 'b')]


def test_load_rejects_empty_input():
    with pytest.raises(EmptyInputError):
        sequencer.load([])
    with pytest.raises(InputError):
        sequencer.load([Emote(' ', 'a')])


def test_shuffle_is_roughly_uniform():
    rng = random.Random(12345)
    counts = Counter(tuple(sequencer.shuffle([1, 2, 3], rng)) for _ in range(6000))
    assert len(counts) == 6
    assert all(800 < c < 1200 for c in counts.values())


def test_advance_past_end_is_terminal():
    session = sequencer.load(EMOTES, None, random.Random(0))
    session.score = 1
    second = sequencer.advance(session)
    assert isinstance(second, Round)
    assert second.index == 1
    assert session.position == 1

    done = sequencer.advance(session)
    assert done == SequenceExhausted(final_score=1, total=2)
    assert sequencer.current(session) is None
    assert session.position == 2

    again = sequencer.advance(session)
    assert isinstance(again, SequenceExhausted)
    assert session.position == 2


def test_current_before_load():
    assert sequencer.current(None) is None


def test_try_lock_once_until_reset():
    round_ = Round(emote=EMOTES[0])
    assert guard.try_lock(round_) is True
    assert guard.try_lock(round_) is False
    assert guard.try_lock(round_) is False
    guard.reset(round_)
    assert round_.locked is False
    assert guard.try_lock(round_) is True


def test_submit_rejections():
    round_ = Round(emote=Emote('Pog', 'a'))
    assert arbiter.submit(GuessAttempt('You', 'pog'), None).reason == NO_ACTIVE_ROUND
    assert arbiter.submit(GuessAttempt('You', '   '), round_).reason == EMPTY_GUESS
    assert arbiter.submit(GuessAttempt('You', 'kappa'), round_).reason == MISMATCH
    assert round_.locked is False


def test_submit_accepts_once():
    round_ = Round(emote=Emote('Pog', 'a'))
    first = arbiter.submit(GuessAttempt('You', ' POG '), round_)
    second = arbiter.submit(GuessAttempt('viewer', 'pog', CHAT), round_)
    assert first.accepted
    assert not second.accepted
    assert second.reason == ALREADY_WON
    assert round_.winner == 'You'


def test_racing_correct_guesses_yield_one_winner():
    round_ = Round(emote=Emote('kappa', 'b'))
    barrier = threading.Barrier(16)
    verdicts = []

    def attempt(i):
        barrier.wait()
        verdicts.append(arbiter.submit(GuessAttempt(f'user{i}', 'Kappa', CHAT), round_))

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(v.accepted for v in verdicts) == 1
    assert all(v.reason == ALREADY_WON for v in verdicts if not v.accepted)


def test_force_lock_skips_without_winner():
    round_ = Round(emote=EMOTES[0])
    assert arbiter.force_lock(round_) is True
    assert round_.winner is None
    assert arbiter.submit(GuessAttempt('You', 'pog'), round_).reason == ALREADY_WON
    assert arbiter.force_lock(round_) is False
    assert arbiter.force_lock(None) is False


def test_round_hides_name_until_locked():
    round_ = Round(emote=Emote('pog', 'a'))
    assert round_.to_dict()['name'] is None
    guard.try_lock(round_)
    assert round_.to_dict()['name'] == 'pog'
