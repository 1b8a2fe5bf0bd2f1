"""Commander Engine - Exceptions

Rule refusals are not exceptions; they come back as a rejected
ActionResult. The classes here are for programming errors only, such as
naming a card that is not where the caller said it was.
"""


class EngineError(Exception):
    """Base class for engine programming errors."""


class CardNotFoundError(EngineError, KeyError):
    """A card id is not present in the zone it was expected in."""

    def __init__(self, card_id: str, zone=None, owner=None):
        self.card_id = card_id
        self.zone = zone
        self.owner = owner
        where = f" in {owner.value}'s {zone.value}" if zone and owner else ""
        super().__init__(f"card {card_id!r} not found{where}")

    def __str__(self) -> str:
        return self.args[0]


class IllegalStateError(EngineError, ValueError):
    """An operation would break an engine invariant."""
