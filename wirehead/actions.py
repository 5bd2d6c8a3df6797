"""Compact tokens attached to chat controls.

Wire format::

    wh#<payload>#<verb>

``payload`` is the hex encoding of the genome's gene bytes (see
:mod:`wirehead.genome`) followed by the render seed as a big-endian signed
64-bit integer. ``verb`` is one of the rating labels or ``promote``.
"""

from __future__ import annotations

from enum import Enum
import re

from pydantic import BaseModel, ConfigDict

from wirehead.exceptions import ActionDecodeError, ActionEncodeError
from wirehead.genome import GENE_WIDTH, Genome, genome_from_bytes, genome_to_bytes

__all__ = [
    "PREFIX",
    "SEPARATOR",
    "MAX_TOKEN_LENGTH",
    "MAX_GENOME_LENGTH",
    "Rating",
    "RateAction",
    "PromoteAction",
    "Action",
    "encode_action",
    "decode_action",
]

PREFIX = "wh"
SEPARATOR = "#"
PROMOTE_VERB = "promote"
# chat platforms cap custom ids at 100 characters
MAX_TOKEN_LENGTH = 100

SEED_WIDTH = 8

# longest genome whose promote token still fits in MAX_TOKEN_LENGTH
MAX_GENOME_LENGTH = (
    (MAX_TOKEN_LENGTH - len(PREFIX) - 2 * len(SEPARATOR) - len(PROMOTE_VERB)) // 2
    - SEED_WIDTH
) // GENE_WIDTH

_HEX_PAYLOAD = re.compile(r"[0-9a-f]+")


class Rating(Enum):
    NEGATIVE_2 = "-2"
    NEGATIVE_1 = "-1"
    ZERO = "0"
    POSITIVE_1 = "+1"
    POSITIVE_2 = "+2"

    @property
    def score(self) -> int:
        return _SCORES[self]

    @property
    def integer(self) -> int:
        return int(self.value)

    @property
    def label(self) -> str:
        return str(self.integer)


_SCORES = {
    Rating.NEGATIVE_2: 0,
    Rating.NEGATIVE_1: 25,
    Rating.ZERO: 50,
    Rating.POSITIVE_1: 75,
    Rating.POSITIVE_2: 100,
}


class RateAction(BaseModel):
    genome: Genome
    seed: int = 0
    rating: Rating
    model_config = ConfigDict(frozen=True)


class PromoteAction(BaseModel):
    genome: Genome
    seed: int = 0
    model_config = ConfigDict(frozen=True)


Action = RateAction | PromoteAction


def _verb_of(action: Action) -> str:
    if isinstance(action, RateAction):
        return action.rating.value
    if isinstance(action, PromoteAction):
        return PROMOTE_VERB
    raise TypeError(f"unsupported action type: {type(action).__name__}")


def encode_action(action: Action) -> str:
    try:
        payload = genome_to_bytes(action.genome) + action.seed.to_bytes(
            SEED_WIDTH, "big", signed=True
        )
    except (OverflowError, ValueError) as exc:
        raise ActionEncodeError(f"cannot encode {action!r}: {exc}") from exc

    token = SEPARATOR.join((PREFIX, payload.hex(), _verb_of(action)))
    if len(token) > MAX_TOKEN_LENGTH:
        raise ActionEncodeError(
            f"token is {len(token)} characters long, limit is {MAX_TOKEN_LENGTH}"
        )
    return token


def decode_action(token: str) -> Action:
    parts = token.split(SEPARATOR)
    if len(parts) != 3:
        raise ActionDecodeError(
            f"expected 3 '{SEPARATOR}'-separated components, got {len(parts)}"
        )
    prefix, payload, verb = parts
    if prefix != PREFIX:
        raise ActionDecodeError(f"invalid action prefix: {prefix!r}")

    # bytes.fromhex alone would also accept whitespace and upper case
    if not _HEX_PAYLOAD.fullmatch(payload) or len(payload) % 2:
        raise ActionDecodeError(f"payload is not valid hex: {payload!r}")
    raw = bytes.fromhex(payload)

    gene_bytes = len(raw) - SEED_WIDTH
    if gene_bytes <= 0 or gene_bytes % GENE_WIDTH:
        raise ActionDecodeError(f"payload has invalid length {len(raw)} bytes")
    genome = genome_from_bytes(raw[:gene_bytes])
    seed = int.from_bytes(raw[gene_bytes:], "big", signed=True)

    if verb == PROMOTE_VERB:
        return PromoteAction(genome=genome, seed=seed)
    try:
        rating = Rating(verb)
    except ValueError as exc:
        raise ActionDecodeError(f"invalid action verb: {verb!r}") from exc
    return RateAction(genome=genome, seed=seed, rating=rating)
