from __future__ import annotations

import random
from typing import Generic, Sequence, TypeVar

from .models import AnswerCard, PromptCard


T = TypeVar("T")


PROMPT_CARDS: tuple[PromptCard, ...] = (
    PromptCard("p1", "A romantic candlelit dinner would be incomplete without ______.", 1),
    PromptCard("p2", "What's that smell?", 1),
    PromptCard("p3", "This is the way the world ends: not with a bang, but with ______.", 1),
    PromptCard("p4", "What never fails to liven up the party?", 1),
    PromptCard("p5", "Airport security now prohibits ______ on airplanes.", 1),
    PromptCard("p6", "What's my secret power?", 1),
    PromptCard("p7", "Instead of coal, Santa now gives the bad children ______.", 1),
    PromptCard("p8", "Coming soon to late-night TV: The World Series of ______.", 1),
    PromptCard("p9", "A successful job interview begins with a firm handshake and ends with ______.", 1),
    PromptCard("p10", "What would grandma find disturbing, yet oddly charming?", 1),
    PromptCard("p11", "What is Batman's guilty pleasure?", 1),
    PromptCard("p12", "Coming to Broadway this season: ______, The Musical.", 1),
    PromptCard("p13", "War! What is it good for?", 1),
    PromptCard("p14", "What's the next kids' meal toy?", 1),
    PromptCard("p15", "What ended my last relationship?", 1),
    PromptCard("p16", "The new reality show features eight washed-up celebrities living with ______.", 1),
    PromptCard("p17", "What's there a ton of in heaven?", 1),
    PromptCard("p18", "The league has banned ______ for giving players an unfair advantage.", 1),
    PromptCard("p19", "Studies show that lab rats navigate mazes 50% faster after being exposed to ______.", 1),
    PromptCard("p20", "What did I bring back from my vacation?", 1),
    PromptCard("p21", "______. Betcha can't have just one!", 1),
    PromptCard("p22", "What keeps me up at night?", 1),
    PromptCard("p23", "In a world ravaged by ______, our only solace is ______.", 2),
    PromptCard("p24", "Step 1: ______. Step 2: ______. Step 3: Profit.", 2),
    PromptCard("p25", "Lifetime presents ______: The Story of ______.", 2),
    PromptCard("p26", "Make a haiku.", 3),
)


ANSWER_CARDS: tuple[AnswerCard, ...] = tuple(
    AnswerCard(f"a{i}", text)
    for i, text in enumerate(
        (
            "Cuddling",
            "Vigorous jazz hands",
            "A thermonuclear detonation",
            "Genghis Khan",
            "Heartwarming orphans",
            "An asymmetric bob",
            "Absolutely nothing",
            "A bag of magic beans",
            "Chainsaws for hands",
            "A sassy robot butler",
            "Passive-aggressive sticky notes",
            "My inner demons",
            "A disappointing birthday party",
            "Grandma",
            "Hot cheese",
            "New Age music",
            "Getting really into yoga",
            "A tiny horse",
            "Being on fire",
            "The invisible hand",
            "A mime having a stroke",
            "Sneezing into a salad",
            "An endless stream of dad jokes",
            "The Dance of the Sugar Plum Fairy",
            "Pretending to care",
            "A live studio audience",
            "Interpretive dance",
            "Emotional baggage",
            "Socks with sandals",
            "An unpaid internship",
            "Soup that is too hot",
            "A really cool hat",
            "The true meaning of Christmas",
            "Lactose intolerance",
            "A falcon with a cap on its head",
            "Free samples",
            "Crying in the shower",
            "Eating an entire snowman",
            "A moment of silence",
            "Overcompensation",
            "Puppies!",
            "Bees?",
            "A suspiciously smug statue",
            "Unreliable Wi-Fi",
            "A sad puppet show",
            "Dying of dysentery",
            "The Boy Scouts of America",
            "Waiting till marriage",
            "A micropig wearing a tiny raincoat",
            "Poor life choices",
            "Sean Connery",
            "Reverse psychology",
            "Raptor attacks",
            "Old-people smell",
            "A good sniff",
            "Existential dread",
            "The placebo effect",
            "Doing the right thing",
            "Silence",
            "Winking at old people",
        ),
        start=1,
    )
)


class Deck(Generic[T]):
    """Shuffled draw pile that refills itself from its source cards."""

    def __init__(self, source: Sequence[T], rng: random.Random | None = None) -> None:
        if not source:
            raise ValueError("deck source must not be empty")
        self._source = list(source)
        self._rng = rng or random.Random()
        self._cards: list[T] = []
        self.reshuffle()

    def __len__(self) -> int:
        return len(self._cards)

    def reshuffle(self) -> None:
        cards = list(self._source)
        self._rng.shuffle(cards)
        self._cards = cards

    def draw(self, count: int = 1) -> list[T]:
        drawn: list[T] = []
        while len(drawn) < count:
            if not self._cards:
                # A reshuffle may hand out a card that is still live in a hand.
                self.reshuffle()
            drawn.append(self._cards.pop())
        return drawn

    def draw_one(self) -> T:
        return self.draw(1)[0]
