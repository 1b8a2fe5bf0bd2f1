"""Commander Engine - Mana and Cost Resolution

This module implements the mana side of the rules:
- parsing cost strings into colored requirements and a generic total
- deriving what a land taps for
- the feasibility check (can_pay_cost) and the commitment (pay_cost),
  which auto-taps lands and spends the pool
- full activated-ability costs: tap, untap, mana, sacrifice, -1/-1
  counters, life and discard

Nothing here mutates its inputs; payments return an updated Player.
"""
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple, Union

from .effects import AbilityCost
from .errors import IllegalStateError
from .objects import CardDefinition, CardInstance
from .player import EMPTY_POOL, ManaPool, Player
from .types import BASIC_LAND_TYPES, COLOR_ORDER, COLOR_WORDS, Color, CounterKind, Zone
from .zones import (
    add_card, add_counters, get_card, remove_card, sacrifice_permanent, tap_permanent, untap_permanent,
)


MANA_SYMBOL_RE = re.compile(r'\{([^}]+)\}')
TAP_ADD_RE = re.compile(r'\{T\}:\s*Add\s+([^.\n]+)', re.IGNORECASE)
FIVE_COLORS: Tuple[Color, ...] = COLOR_ORDER[:5]


# =============================================================================
# Mana Cost
# =============================================================================

def _symbol_color(symbol: str) -> Optional[Color]:
    """Color paid by one symbol. Hybrid and Phyrexian count as their first color."""
    for part in symbol.split("/"):
        if part in ("W", "U", "B", "R", "G", "C"):
            return Color(part)
    return None


@dataclass(frozen=True)
class ManaCost:
    """A mana cost split into per-color requirements and a generic total.

    Attributes:
        colored: (color, count) pairs in WUBRGC order, zero counts omitted
        generic: Generic mana, payable with any color
        has_x: The printed cost contains X (X is treated as 0)
    """
    colored: Tuple[Tuple[Color, int], ...] = ()
    generic: int = 0
    has_x: bool = False

    @classmethod
    def parse(cls, cost: Optional[str]) -> 'ManaCost':
        """Parse a cost string such as "{2}{G}{G}".

        Args:
            cost: The cost string (may be empty or None)

        Returns:
            The parsed ManaCost. Unknown symbols are ignored.
        """
        counts = {color: 0 for color in COLOR_ORDER}
        generic = 0
        has_x = False
        for raw in MANA_SYMBOL_RE.findall(cost or ""):
            symbol = raw.strip().upper()
            if symbol.isdigit():
                generic += int(symbol)
            elif symbol == "X":
                has_x = True
            else:
                color = _symbol_color(symbol)
                if color is not None:
                    counts[color] += 1
        colored = tuple((c, n) for c, n in counts.items() if n)
        return cls(colored=colored, generic=generic, has_x=has_x)

    def required(self, color: Color) -> int:
        return dict(self.colored).get(color, 0)

    @property
    def colored_total(self) -> int:
        return sum(n for _, n in self.colored)

    @property
    def cmc(self) -> int:
        return self.generic + self.colored_total

    @property
    def is_free(self) -> bool:
        return self.cmc == 0

    def plus_generic(self, amount: int) -> 'ManaCost':
        return replace(self, generic=self.generic + amount)

    def __str__(self) -> str:
        text = f"{{{self.generic}}}" if self.generic or not self.colored else ""
        for color, count in self.colored:
            text += f"{{{color.value}}}" * count
        return text


CostLike = Union[str, ManaCost, CardInstance, CardDefinition, None]


def as_cost(cost: CostLike) -> ManaCost:
    """Coerce a cost string, card or ManaCost to a ManaCost."""
    if isinstance(cost, ManaCost):
        return cost
    if isinstance(cost, CardInstance):
        return ManaCost.parse(cost.definition.mana_cost)
    if isinstance(cost, CardDefinition):
        return ManaCost.parse(cost.mana_cost)
    return ManaCost.parse(cost)


# =============================================================================
# Land Mana
# =============================================================================

@dataclass(frozen=True)
class LandMana:
    """What a land adds when tapped.

    ``produces`` is added all at once (e.g. {C}{C}). ``choices`` means the
    land adds exactly one mana of one of these colors instead.
    """
    produces: Tuple[Color, ...] = (Color.COLORLESS,)
    choices: Tuple[Color, ...] = ()

    @property
    def is_choice(self) -> bool:
        return bool(self.choices)

    @property
    def total(self) -> int:
        return 1 if self.choices else len(self.produces)

    def amount_of(self, color: Color) -> int:
        if self.choices:
            return 1 if color in self.choices else 0
        return self.produces.count(color)

    def tap_for(self, color: Optional[Color] = None) -> Tuple[Color, ...]:
        """Mana added by one tap.

        A choice land makes ``color`` when it can, otherwise its first
        option.
        """
        if self.choices:
            return (color if color in self.choices else self.choices[0],)
        return self.produces


def land_mana(card: Union[CardInstance, CardDefinition]) -> LandMana:
    """Work out what a land taps for.

    Explicit "{T}: Add ..." text wins. Failing that, basic land types in the
    subtype or name, then color words in the name. Anything else makes {C}.
    """
    definition = card.definition if isinstance(card, CardInstance) else card

    clauses = TAP_ADD_RE.findall(definition.text or "")
    if clauses:
        options: List[Color] = []
        fixed: Tuple[Color, ...] = ()
        for clause in clauses:
            if re.search(r'mana of any (?:one )?color', clause, re.IGNORECASE):
                options.extend(FIVE_COLORS)
                continue
            symbols = [Color(s) for s in re.findall(r'\{([WUBRGC])\}', clause.upper())]
            if not symbols:
                continue
            if re.search(r'\bor\b', clause, re.IGNORECASE) or len(clauses) > 1:
                options.extend(symbols)
            else:
                fixed = tuple(symbols)
        if options:
            return LandMana(produces=(), choices=tuple(dict.fromkeys(options)))
        if fixed:
            return LandMana(produces=fixed)

    words = f"{definition.subtype or ''} {definition.name}".lower()
    found = [color for land_type, color in BASIC_LAND_TYPES.items()
             if re.search(r'\b' + land_type + r'\b', words)]
    if not found:
        found = [color for word, color in COLOR_WORDS.items()
                 if re.search(r'\b' + word + r'\b', definition.name.lower())]
    if len(found) == 1:
        return LandMana(produces=(found[0],))
    if found:
        return LandMana(produces=(), choices=tuple(found))
    return LandMana()


def tap_land_for_mana(player: Player, card_id: str, color: Optional[Color] = None) -> Player:
    """Tap one land and add its mana to the pool.

    Raises:
        CardNotFoundError: If the land is not on the battlefield.
        IllegalStateError: If the card is not an untapped land.
    """
    card = get_card(player, card_id, Zone.BATTLEFIELD)
    if not card.is_land or card.tapped:
        raise IllegalStateError(f"{card.name} cannot be tapped for mana")
    pool = player.mana
    for produced in land_mana(card).tap_for(color):
        pool = pool.add(produced)
    player = tap_permanent(player, card_id)
    return player.with_mana(pool)


# =============================================================================
# Paying Mana Costs
# =============================================================================

@dataclass(frozen=True)
class ManaPayment:
    """Outcome of pay_cost.

    Attributes:
        player: Player after tapping lands and spending the pool
        spent: Mana actually spent, by color (feeds Converge)
        tapped_land_ids: Lands tapped by this payment, in order
        complete: False if the cost could not be fully paid
    """
    player: Player
    spent: ManaPool
    tapped_land_ids: Tuple[str, ...]
    complete: bool


def _pick_land(battlefield: List[CardInstance], color: Optional[Color]) -> Optional[int]:
    """Index of the untapped land to tap next.

    For a colored requirement, single-purpose lands go before choice lands.
    For generic mana the first untapped land is used.
    """
    best = None
    best_rank = None
    for index, card in enumerate(battlefield):
        if not card.is_land or card.tapped:
            continue
        if color is None:
            return index
        produced = land_mana(card)
        if produced.amount_of(color) == 0:
            continue
        rank = len(produced.choices)
        if best_rank is None or rank < best_rank:
            best, best_rank = index, rank
    return best


def pay_cost(player: Player, cost: CostLike) -> ManaPayment:
    """Commit a mana payment.

    For each color requirement, lands producing that color are tapped one
    at a time until the pool holds enough, then the requirement is spent.
    For the generic part, any untapped land is tapped whenever the pool is
    empty and mana is spent one at a time from the richest color.

    Callers validate with can_pay_cost first; an unpayable cost returns a
    payment with ``complete=False`` rather than raising.
    """
    cost = as_cost(cost)
    pool = player.mana
    battlefield = list(player.battlefield)
    tapped: List[str] = []
    spent = EMPTY_POOL
    complete = True

    def tap(index: int, color: Optional[Color]) -> None:
        nonlocal pool
        land = battlefield[index]
        for produced in land_mana(land).tap_for(color):
            pool = pool.add(produced)
        battlefield[index] = land.with_tapped(True)
        tapped.append(land.instance_id)

    for color, need in cost.colored:
        while pool.get(color) < need:
            index = _pick_land(battlefield, color)
            if index is None:
                break
            tap(index, color)
        paid = min(need, pool.get(color))
        pool = pool.spend(color, paid)
        spent = spent.add(color, paid)
        if paid < need:
            complete = False

    remaining = cost.generic
    while remaining > 0:
        if pool.total == 0:
            index = _pick_land(battlefield, None)
            if index is None:
                complete = False
                break
            tap(index, None)
            continue
        richest = pool.largest()
        pool = pool.spend(richest)
        spent = spent.add(richest)
        remaining -= 1

    updated = replace(player, mana=pool,
                      zones=replace(player.zones, battlefield=tuple(battlefield)))
    return ManaPayment(player=updated, spent=spent, tapped_land_ids=tuple(tapped),
                       complete=complete)


def can_pay_cost(player: Player, cost: CostLike) -> bool:
    """Whether the pool plus untapped lands can pay ``cost``.

    A pure check: it runs the same commitment on a throwaway copy and
    reports whether it completed. Nothing is tapped.
    """
    return pay_cost(player, cost).complete


def available_mana(player: Player) -> int:
    """Pool plus everything the untapped lands can make."""
    return player.mana.total + sum(land_mana(c).total for c in player.untapped_lands())


# =============================================================================
# Activated Ability Costs
# =============================================================================

@dataclass(frozen=True)
class AbilityPayment:
    """Outcome of pay_ability_cost."""
    player: Player
    spent: ManaPool
    sacrificed: Tuple[CardInstance, ...]
    discarded: Tuple[CardInstance, ...]
    complete: bool


def _matches_qualifier(card: CardInstance, qualifier: str) -> bool:
    word = qualifier.lower()
    if word in ("creature", "creatures"):
        return card.is_creature
    if word in ("land", "lands"):
        return card.is_land
    if word in ("permanent", "permanents"):
        return True
    if word in ("artifact", "enchantment"):
        return card.card_type.value == word
    return card.definition.has_subtype(qualifier)


def sacrifice_candidates(player: Player, source: CardInstance, qualifier: str) -> List[CardInstance]:
    """Permanents that can pay "Sacrifice a <qualifier>", cheapest first.

    Tokens go before cards, then lower power. The source itself is only
    offered when nothing else qualifies.
    """
    matching = [c for c in player.battlefield if _matches_qualifier(c, qualifier)]
    others = [c for c in matching if c.instance_id != source.instance_id]
    pool = others or matching
    return sorted(pool, key=lambda c: (not c.is_token, c.effective_power))


def can_pay_ability_cost(player: Player, card: CardInstance, cost: AbilityCost) -> bool:
    """Check every part of an activated ability's cost without paying it."""
    permanent = player.permanent(card.instance_id)
    needs_permanent = (cost.tap or cost.untap or cost.sacrifice_self or cost.minus_counters)
    if needs_permanent and permanent is None:
        return False
    if cost.tap and permanent.tapped:
        return False
    if cost.untap and not permanent.tapped:
        return False
    if cost.life and player.life < cost.life:
        return False
    if cost.discard and len(player.hand) < cost.discard:
        return False
    if cost.sacrifice_qualifier and not sacrifice_candidates(player, card, cost.sacrifice_qualifier):
        return False
    if cost.mana:
        trial = player
        if cost.tap:
            trial = tap_permanent(player, card.instance_id)
        return can_pay_cost(trial, cost.mana)
    return True


def pay_ability_cost(player: Player, card: CardInstance, cost: AbilityCost) -> AbilityPayment:
    """Pay an activated ability's cost.

    The source is tapped before mana is paid so a land paying for its own
    ability is not tapped twice. Sacrificing the source comes last.
    """
    complete = True
    spent = EMPTY_POOL
    sacrificed: List[CardInstance] = []
    discarded: List[CardInstance] = []

    if cost.tap:
        player = tap_permanent(player, card.instance_id)
    if cost.untap:
        player = untap_permanent(player, card.instance_id)
    if cost.mana:
        payment = pay_cost(player, cost.mana)
        player, spent = payment.player, payment.spent
        complete = complete and payment.complete
    if cost.minus_counters:
        player = add_counters(player, card.instance_id, CounterKind.MINUS_ONE, cost.minus_counters)
    if cost.life:
        player = player.lose_life(cost.life)
    for _ in range(cost.discard):
        if not player.hand:
            complete = False
            break
        player, discarded_card = remove_card(player, player.hand[-1].instance_id, Zone.HAND)
        player = add_card(player, discarded_card, Zone.GRAVEYARD)
        discarded.append(discarded_card)
    if cost.sacrifice_qualifier:
        candidates = sacrifice_candidates(player, card, cost.sacrifice_qualifier)
        if candidates:
            player, gone = sacrifice_permanent(player, candidates[0].instance_id)
            sacrificed.append(gone)
        else:
            complete = False
    if cost.sacrifice_self and player.permanent(card.instance_id) is not None:
        player, gone = sacrifice_permanent(player, card.instance_id)
        sacrificed.append(gone)

    return AbilityPayment(player=player, spent=spent, sacrificed=tuple(sacrificed),
                          discarded=tuple(discarded), complete=complete)
