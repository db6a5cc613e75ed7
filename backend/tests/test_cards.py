import random

import pytest

from badcards.game.cards import ANSWER_CARDS, PROMPT_CARDS, Deck
from badcards.game.models import AnswerCard


def test_card_ids_are_unique():
    assert len({c.id for c in PROMPT_CARDS}) == len(PROMPT_CARDS)
    assert len({c.id for c in ANSWER_CARDS}) == len(ANSWER_CARDS)
    assert all(c.blanks >= 1 for c in PROMPT_CARDS)


def test_deck_is_a_permutation_of_its_source():
    deck = Deck(ANSWER_CARDS, random.Random(7))
    drawn = deck.draw(len(ANSWER_CARDS))

    assert sorted(c.id for c in drawn) == sorted(c.id for c in ANSWER_CARDS)
    assert len(deck) == 0


def test_draw_removes_cards_from_the_deck():
    deck = Deck(ANSWER_CARDS, random.Random(7))
    first = deck.draw(5)

    assert len(first) == 5
    assert len(deck) == len(ANSWER_CARDS) - 5
    rest = deck.draw(len(deck))
    assert not {c.id for c in first} & {c.id for c in rest}


def test_draw_reshuffles_when_exhausted_mid_draw():
    source = [AnswerCard(f"x{i}", f"card {i}") for i in range(3)]
    deck = Deck(source, random.Random(3))
    deck.draw(2)

    drawn = deck.draw(4)

    assert len(drawn) == 4
    # One card left over plus three from the fresh shuffle.
    assert len(deck) == 0
    assert {c.id for c in drawn} <= {c.id for c in source}


def test_empty_source_is_rejected():
    with pytest.raises(ValueError):
        Deck([])
