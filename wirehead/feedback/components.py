from __future__ import annotations

from wirehead.actions import PromoteAction, RateAction, Rating, encode_action
from wirehead.chat.base import Button, ButtonStyle
from wirehead.genome import Genome

__all__ = ["RATING_STYLES", "rating_buttons", "promote_button"]

RATING_STYLES: dict[Rating, ButtonStyle] = {
    Rating.NEGATIVE_2: ButtonStyle.DANGER,
    Rating.NEGATIVE_1: ButtonStyle.DANGER,
    Rating.ZERO: ButtonStyle.SECONDARY,
    Rating.POSITIVE_1: ButtonStyle.SUCCESS,
    Rating.POSITIVE_2: ButtonStyle.SUCCESS,
}

PROMOTE_LABEL = "Promote"


def rating_buttons(genome: Genome, seed: int) -> list[Button]:
    return [
        Button(
            label=rating.label,
            action=encode_action(RateAction(genome=genome, seed=seed, rating=rating)),
            style=style,
        )
        for rating, style in RATING_STYLES.items()
    ]


def promote_button(genome: Genome, seed: int) -> Button:
    return Button(
        label=PROMOTE_LABEL,
        action=encode_action(PromoteAction(genome=genome, seed=seed)),
        style=ButtonStyle.PRIMARY,
    )
