"""Card text interpretation, named-card hooks and deck building"""
from .abilities import activatable_abilities, has_keyword, parse_card_abilities, parse_spell_effect
from .database import CardDatabase, DeckBuildReport, DeckEntry, Decklist, build_deck
