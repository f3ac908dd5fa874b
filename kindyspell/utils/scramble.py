"""Tray scrambling — Fisher-Yates shuffle over an injectable RNG."""

import random


def scramble(items: list, rng: random.Random | None = None) -> list:
    """Return a shuffled copy of items; the input list is left untouched.

    Every permutation is equally likely, including the identity, so a
    scrambled tray may occasionally come out in spelling order.
    """
    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
