"""Commander Engine - Ability Interpreter

Turns oracle text into ParsedAbility descriptors. This is a best-effort
pattern matcher over a closed vocabulary, not a grammar:

- text is normalized (reminder text dropped, the card's own name replaced
  by a self-reference token)
- multi-sentence idioms are matched on the whole text first, so a
  sentence split cannot leave half of them behind
- each remaining sentence is tried as a trigger, an activated ability, or
  a keyword line
- effect clauses go through EFFECT_PATTERNS top to bottom and the first
  match wins

Unrecognized text never raises. It yields an inert ability or nothing.
"""
import re
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..engine.effects import AbilityCost, AbilityEffect, ParsedAbility, TokenSpec
from ..engine.mana import can_pay_ability_cost
from ..engine.objects import CardDefinition, CardInstance
from ..engine.player import ManaPool, Player
from ..engine.types import (
    AbilityKind, CardType, Color, COLOR_WORDS, CounterKind, EffectType, KEYWORDS,
    SearchMode, TargetKind, TriggerEvent, VariableAmount,
)


SELF_REF = "CARDNAME"

NUMBER_WORDS: Dict[str, int] = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "x": 0,
}
AMOUNT = r'(\d+|x|an?|one|two|three|four|five|six|seven|eight|nine|ten)'

BASIC_LAND_NAMES: Tuple[str, ...] = ("Plains", "Island", "Swamp", "Mountain", "Forest")

# Three-color basic land groups, told apart by which two basics are absent
SHARD_LAND_TYPES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Bant", ("Plains", "Island", "Forest")),
    ("Esper", ("Plains", "Island", "Swamp")),
    ("Grixis", ("Island", "Swamp", "Mountain")),
    ("Jund", ("Swamp", "Mountain", "Forest")),
    ("Naya", ("Plains", "Mountain", "Forest")),
)

REMINDER_RE = re.compile(r'\([^)]*\)')
MANA_SYMBOL_RE = re.compile(r'\{([^}]+)\}')
ACTIVATED_RE = re.compile(r'^([^:]+):\s*(.+)$')
TRIGGER_START_RE = re.compile(r'^(?:when|whenever|at the|landfall|eminence)\b', re.IGNORECASE)
ABILITY_WORD_RE = re.compile(r'^(landfall|eminence)\s*[—–-]+\s*', re.IGNORECASE)
ETB_SACRIFICE_SEARCH_RE = re.compile(
    r'when(?:ever)?\s+' + SELF_REF + r'\s+enters(?:\s+the\s+battlefield)?,\s*'
    r'sacrifice\s+(?:it|' + SELF_REF + r')\.\s*when\s+you\s+do,\s*(search[^.]*)\.',
    re.IGNORECASE,
)
CLAUSE_SPLIT_RE = re.compile(
    r',?\s+and\s+(?=(?:you|each|target|that|its|' + SELF_REF
    + r'|draws?|gains?|loses?|puts?|creates?|deals?|scry|proliferate|untap)\b)'
    r'|,\s*then\s+',
    re.IGNORECASE,
)
# sentences about another object's controller, not the caster
OTHER_CONTROLLER_RE = re.compile(r"^(?:its|that (?:creature|permanent)'s) controller\b", re.IGNORECASE)
MULTI_MARKER = "\x00multi"

CardLike = Union[CardInstance, CardDefinition]


def _definition(card: CardLike) -> CardDefinition:
    return card.definition if isinstance(card, CardInstance) else card


def parse_amount(word: str) -> int:
    """Integer, number word, "a"/"an" (1) or X (0)."""
    word = word.strip().lower()
    if word.isdigit():
        return int(word)
    return NUMBER_WORDS.get(word, 1)


def _contains_word(text: str, word: str) -> bool:
    return re.search(r'\b' + re.escape(word) + r'\b', text, re.IGNORECASE) is not None


# =============================================================================
# Normalization
# =============================================================================

def normalize_text(card: CardLike) -> str:
    """Strip reminder text and replace self references with CARDNAME."""
    definition = _definition(card)
    text = REMINDER_RE.sub("", definition.text or "")
    name = definition.name.strip()
    if name:
        text = re.sub(re.escape(name), SELF_REF, text, flags=re.IGNORECASE)
        short = name.split(",")[0].strip()
        if short != name and len(short) > 2:
            text = re.sub(r'\b' + re.escape(short) + r'\b', SELF_REF, text)
    text = re.sub(r'\bthis (?:creature|permanent|artifact|enchantment|land)\b',
                  SELF_REF, text, flags=re.IGNORECASE)
    return text.strip()


def split_segments(text: str) -> List[str]:
    """Split text at period boundaries and line breaks."""
    parts = re.split(r'\.(?:\s+|$)|\n+', text)
    return [p.strip() for p in parts if p and p.strip()]


def shard_land_types(text: str) -> Tuple[str, ...]:
    """The three basic types named in ``text`` when they form a known group.

    A group matches only when its three types appear and the other two
    basics do not.
    """
    present = {name for name in BASIC_LAND_NAMES if _contains_word(text, name)}
    for _, types in SHARD_LAND_TYPES:
        if present == set(types):
            return types
    return ()


def _named_basic_types(text: str) -> Tuple[str, ...]:
    return tuple(name for name in BASIC_LAND_NAMES if _contains_word(text, name))


# =============================================================================
# Keywords
# =============================================================================

def extract_keywords(text: str) -> List[str]:
    """Keywords from KEYWORDS that appear as whole words."""
    lower = text.lower()
    return [kw for kw in KEYWORDS
            if re.search(r'\b' + re.escape(kw) + r'\b', lower)]


def _is_keyword_line(text: str, keywords: List[str]) -> bool:
    rest = text.lower()
    for kw in sorted(keywords, key=len, reverse=True):
        rest = re.sub(r'\b' + re.escape(kw) + r'\b', " ", rest)
    return re.sub(r'\band\b|[\s,;]', "", rest) == ""


# =============================================================================
# Costs
# =============================================================================

def parse_cost(cost_text: str) -> Optional[AbilityCost]:
    """Parse the part of an activated ability before the colon.

    Returns:
        The cost, or None if nothing in the text is a recognized cost.
    """
    lower = cost_text.lower()
    fields = {}

    if "{t}" in lower:
        fields["tap"] = True
    if "{q}" in lower:
        fields["untap"] = True

    mana = "".join("{" + s.upper() + "}" for s in MANA_SYMBOL_RE.findall(cost_text)
                   if s.upper() not in ("T", "Q"))
    if mana:
        fields["mana"] = mana

    sacrifice = re.search(r'\bsacrifice\s+(another\s+|an?\s+)?([\w-]+)', cost_text, re.IGNORECASE)
    if sacrifice:
        word = sacrifice.group(2)
        if word.upper() == SELF_REF or word.lower() in ("it", "this"):
            fields["sacrifice_self"] = True
        elif sacrifice.group(1):
            fields["sacrifice_qualifier"] = word

    counter = re.search(r'\bput\s+' + AMOUNT + r'\s+-1/-1\s+counters?\s+on\b', lower)
    if counter:
        fields["minus_counters"] = parse_amount(counter.group(1))

    life = re.search(r'\bpay\s+' + AMOUNT + r'\s+life\b', lower)
    if life:
        fields["life"] = parse_amount(life.group(1))

    discard = re.search(r'\bdiscard\s+' + AMOUNT + r'\s+cards?\b', lower)
    if discard:
        fields["discard"] = parse_amount(discard.group(1))

    return AbilityCost(**fields) if fields else None


# =============================================================================
# Effects
# =============================================================================

def _player_target(lower: str, default: TargetKind) -> TargetKind:
    if re.search(r'\b(?:each|target|an?) opponents?\b', lower):
        return TargetKind.OPPONENT
    if "target player" in lower:
        return TargetKind.ANY_PLAYER
    return default


def _sacrifice_search(text: str) -> Optional[AbilityEffect]:
    lower = text.lower()
    if not ("sacrifice" in lower and "search" in lower and "library" in lower):
        return None
    return AbilityEffect(
        effect_type=EffectType.SACRIFICE_SEARCH,
        search=SearchMode.BASIC_LAND_OF_TYPES,
        land_types=shard_land_types(text) or _named_basic_types(text),
        put_tapped="tapped" in lower,
    )


def _search_library(text: str) -> Optional[AbilityEffect]:
    lower = text.lower()
    if not ("search" in lower and "library" in lower):
        return None
    tapped = "tapped" in lower
    if "up to two basic land" in lower and "hand" in lower:
        return AbilityEffect(EffectType.SEARCH_LIBRARY, amount=2, put_tapped=tapped,
                             search=SearchMode.TWO_BASIC_LANDS_ONE_TO_HAND)
    if re.search(r'\btwo\b.*\blands?\b', lower) and "battlefield" in lower:
        return AbilityEffect(EffectType.SEARCH_LIBRARY, amount=2, put_tapped=tapped,
                             search=SearchMode.TWO_LANDS_TO_BATTLEFIELD)
    types = shard_land_types(text)
    if not types and "basic" in lower:
        types = _named_basic_types(text)
    if types:
        return AbilityEffect(EffectType.SEARCH_LIBRARY, put_tapped=tapped, land_types=types,
                             search=SearchMode.BASIC_LAND_OF_TYPES,
                             to_hand="battlefield" not in lower)
    if "basic land" in lower:
        return AbilityEffect(EffectType.SEARCH_LIBRARY, put_tapped=tapped,
                             search=SearchMode.SINGLE_BASIC_LAND,
                             to_hand="battlefield" not in lower)
    return None


def _add_mana(text: str) -> Optional[AbilityEffect]:
    fixed = re.search(r'\badd\s+((?:\{[WUBRGC]\})+)', text, re.IGNORECASE)
    if fixed:
        symbols = tuple(Color(s) for s in re.findall(r'\{([WUBRGC])\}', fixed.group(1).upper()))
        return AbilityEffect(EffectType.ADD_MANA, amount=len(symbols), mana=symbols)
    any_color = re.search(r'\badd\s+' + AMOUNT + r'\s+mana of any (?:one )?color',
                          text, re.IGNORECASE)
    if any_color:
        return AbilityEffect(EffectType.ADD_MANA, amount=parse_amount(any_color.group(1)),
                             any_color=True)
    return None


def _regenerate(text: str) -> Optional[AbilityEffect]:
    lower = text.lower()
    if not re.search(r'\bregenerate\b', lower):
        return None
    target = TargetKind.ANY_CREATURE if "regenerate target" in lower else TargetKind.SELF
    return AbilityEffect(EffectType.REGENERATE, target=target)


def _untap(text: str) -> Optional[AbilityEffect]:
    lower = text.lower()
    if not re.search(r'\buntap\b', lower):
        return None
    target = TargetKind.ANY_CREATURE if "untap target" in lower else TargetKind.SELF
    return AbilityEffect(EffectType.UNTAP, target=target)


def _draw(text: str) -> Optional[AbilityEffect]:
    match = re.search(r'\bdraws?\s+' + AMOUNT + r'\s+cards?\b', text, re.IGNORECASE)
    if not match:
        return None
    return AbilityEffect(EffectType.DRAW_CARD, amount=parse_amount(match.group(1)),
                         target=TargetKind.CONTROLLER)


def _gain_life(text: str) -> Optional[AbilityEffect]:
    match = re.search(r'\bgains?\s+' + AMOUNT + r'\s+life\b', text, re.IGNORECASE)
    if not match:
        return None
    return AbilityEffect(EffectType.GAIN_LIFE, amount=parse_amount(match.group(1)),
                         target=TargetKind.CONTROLLER)


def _lose_life(text: str) -> Optional[AbilityEffect]:
    match = re.search(r'\bloses?\s+' + AMOUNT + r'\s+life\b', text, re.IGNORECASE)
    if not match:
        return None
    return AbilityEffect(EffectType.LOSE_LIFE, amount=parse_amount(match.group(1)),
                         target=_player_target(text.lower(), TargetKind.CONTROLLER))


def _deal_damage(text: str) -> Optional[AbilityEffect]:
    match = re.search(r'\bdeals?\s+' + AMOUNT + r'\s+damage\b(.*)', text, re.IGNORECASE)
    if not match:
        return None
    rest = match.group(2).lower()
    if "any target" in rest:
        target = TargetKind.ANY_TARGET
    elif "target player" in rest or "each player" in rest:
        target = TargetKind.ANY_PLAYER
    elif "opponent" in rest:
        target = TargetKind.OPPONENT
    elif "creature" in rest:
        target = TargetKind.ANY_CREATURE
    else:
        target = TargetKind.ANY_TARGET
    return AbilityEffect(EffectType.DEAL_DAMAGE, amount=parse_amount(match.group(1)),
                         target=target)


def _destroy(text: str) -> Optional[AbilityEffect]:
    lower = text.lower()
    if not re.search(r'\bdestroy\s+(?:target|all|each)\b', lower):
        return None
    target = TargetKind.ALL_CREATURES if re.search(r'destroy (?:all|each) creatures?', lower) \
        else TargetKind.ANY_CREATURE
    return AbilityEffect(EffectType.DESTROY, target=target)


def _counter_spell(text: str) -> Optional[AbilityEffect]:
    lower = text.lower()
    if not re.search(r'\bcounter\s+target\s+(?:[\w ]+\s)?spell\b', lower):
        return None
    unless = re.search(r'unless its controller pays\s+\{(\d+)\}', lower)
    return AbilityEffect(EffectType.COUNTER_SPELL, target=TargetKind.ANY_TARGET,
                         unless_pays=int(unless.group(1)) if unless else 0)


def _return_to_hand(text: str) -> Optional[AbilityEffect]:
    lower = text.lower()
    if not re.search(r"\breturn\b.*\bto (?:its|their) owners?(?:'s|'|’s)? hands?\b", lower):
        return None
    if "all attacking" in lower:
        return AbilityEffect(EffectType.RETURN_TO_HAND, target=TargetKind.ALL_ATTACKING)
    return AbilityEffect(EffectType.RETURN_TO_HAND, target=TargetKind.ANY_CREATURE)


def _scry(text: str) -> Optional[AbilityEffect]:
    match = re.search(r'\bscry\s+(\d+)', text, re.IGNORECASE)
    if not match:
        return None
    return AbilityEffect(EffectType.SCRY, amount=int(match.group(1)), target=TargetKind.CONTROLLER)


def _proliferate(text: str) -> Optional[AbilityEffect]:
    if not re.search(r'\bproliferate\b', text, re.IGNORECASE):
        return None
    return AbilityEffect(EffectType.PROLIFERATE)


def _poison(text: str) -> Optional[AbilityEffect]:
    match = re.search(r'\bgets?\s+' + AMOUNT + r'\s+poison counters?\b', text, re.IGNORECASE)
    if not match:
        return None
    return AbilityEffect(EffectType.GIVE_POISON, amount=parse_amount(match.group(1)),
                         target=TargetKind.OPPONENT)


def _put_counter(text: str) -> Optional[AbilityEffect]:
    match = re.search(
        r'\bput\s+(' + AMOUNT[1:-1] + r'|one or more)\s+([+-]1/[+-]1)\s+counters?\s+on\s+(.+)',
        text, re.IGNORECASE,
    )
    if not match:
        return None
    amount = 1 if match.group(1).lower() == "one or more" else parse_amount(match.group(1))
    kind = CounterKind.MINUS_ONE if match.group(2).startswith("-") else CounterKind.PLUS_ONE
    where = match.group(3).lower()
    if re.search(r'each creature (?:your opponents control|an opponent controls)', where):
        target = TargetKind.OPPONENT_CREATURES
    elif re.search(r'\b(?:each|all) (?:other )?creatures?\b', where):
        target = TargetKind.ALL_CREATURES
    elif re.search(r'\b(?:target|a|another) creature\b', where):
        target = TargetKind.ANY_CREATURE
    else:
        target = TargetKind.SELF
    return AbilityEffect(EffectType.PUT_COUNTER, amount=amount, counter=kind, target=target)


TOKEN_RE = re.compile(
    r'\bcreate\s+(' + AMOUNT[1:-1] + r'|a number of)\s+(.*?)\btokens?\b(.*)',
    re.IGNORECASE,
)


def _token_color(description: str, default: Color) -> Color:
    for word, color in COLOR_WORDS.items():
        if _contains_word(description, word):
            return color
    return default


def _create_token(text: str) -> Optional[AbilityEffect]:
    """Token creation, keyed on a fixed set of creature types."""
    match = TOKEN_RE.search(text)
    if not match:
        return None
    count_word, description, tail = match.group(1).lower(), match.group(2), match.group(3)
    lower = text.lower()
    desc_lower = description.lower()
    stats = re.search(r'(\d+)/(\d+)', description)
    keywords = tuple(extract_keywords(tail))
    amount = 1 if count_word == "a number of" else parse_amount(count_word)
    variable = None

    if "goblin" in desc_lower and re.search(r'number of goblins you control', lower):
        token = TokenSpec("Goblin", 1, 1, Color.RED, keywords)
        variable = VariableAmount.GOBLINS_YOU_CONTROL
    elif "snake" in desc_lower:
        extra = tuple(k for k in keywords if k != "deathtouch")
        token = TokenSpec("Snake", 1, 1, Color.GREEN, ("deathtouch",) + extra)
    elif "goblin" in desc_lower:
        token = TokenSpec("Goblin", 1, 1, Color.RED, keywords)
    elif "insect" in desc_lower:
        token = TokenSpec("Insect", 1, 1, Color.GREEN, keywords)
    elif "vampire" in desc_lower:
        token = TokenSpec("Vampire", 1, 1, Color.BLACK, keywords)
    elif "drake" in desc_lower:
        extra = tuple(k for k in keywords if k != "flying")
        token = TokenSpec("Drake", 2, 2, Color.BLUE, ("flying",) + extra)
    elif "elemental" in desc_lower:
        token = TokenSpec("Elemental", 1, 1, Color.RED, keywords)
    elif "plant" in desc_lower:
        token = TokenSpec("Plant", 0, 1, Color.GREEN, keywords)
        if re.search(r'for each land you control|number of lands you control', lower):
            variable = VariableAmount.LANDS_YOU_CONTROL
    else:
        return None

    if stats:
        token = TokenSpec(token.name, int(stats.group(1)), int(stats.group(2)),
                          _token_color(description, token.color), token.keywords)
    else:
        token = TokenSpec(token.name, token.power, token.toughness,
                          _token_color(description, token.color), token.keywords)
    return AbilityEffect(EffectType.CREATE_TOKEN, amount=amount, variable=variable,
                         token=token, target=TargetKind.CONTROLLER)


def _pump(text: str) -> Optional[AbilityEffect]:
    match = re.search(r'\bgets?\s+([+-]\d+)/([+-]\d+)\s+until end of turn', text, re.IGNORECASE)
    if not match:
        return None
    lower = text.lower()
    if "target creature" in lower:
        target = TargetKind.ANY_CREATURE
    elif "creatures you control" in lower:
        target = TargetKind.CONTROLLER
    else:
        target = TargetKind.SELF
    return AbilityEffect(EffectType.PUMP, target=target,
                         pump=(int(match.group(1)), int(match.group(2))))


# Order matters: first match wins. The sacrifice-then-search idiom is a
# superset of the plain search text, so it is tested first.
EFFECT_PATTERNS: Tuple[Tuple[str, Callable[[str], Optional[AbilityEffect]]], ...] = (
    ("sacrifice_search", _sacrifice_search),
    ("search_library", _search_library),
    ("add_mana", _add_mana),
    ("regenerate", _regenerate),
    ("untap", _untap),
    ("draw", _draw),
    ("gain_life", _gain_life),
    ("lose_life", _lose_life),
    ("deal_damage", _deal_damage),
    ("destroy", _destroy),
    ("counter_spell", _counter_spell),
    ("return_to_hand", _return_to_hand),
    ("scry", _scry),
    ("proliferate", _proliferate),
    ("poison", _poison),
    ("put_counter", _put_counter),
    ("create_token", _create_token),
    ("pump", _pump),
)

# Effects whose text must be read as a whole, never split at "and"
_WHOLE_CLAUSE_EFFECTS = frozenset({
    EffectType.SACRIFICE_SEARCH, EffectType.SEARCH_LIBRARY, EffectType.CREATE_TOKEN,
    EffectType.COUNTER_SPELL, EffectType.RETURN_TO_HAND,
})


def parse_effect(text: str) -> Optional[AbilityEffect]:
    """Match one effect clause against EFFECT_PATTERNS."""
    for _, pattern in EFFECT_PATTERNS:
        effect = pattern(text)
        if effect is not None:
            return effect
    return None


def parse_effects(text: str) -> Tuple[AbilityEffect, ...]:
    """Parse an effect clause that may join several effects.

    "target player loses 1 life and you gain 1 life" gives two effects.
    """
    text = text.strip().rstrip(".")
    if not text:
        return ()
    whole = parse_effect(text)
    if whole is not None and whole.effect_type in _WHOLE_CLAUSE_EFFECTS:
        return (whole,)
    pieces = [p for p in CLAUSE_SPLIT_RE.split(text) if p and p.strip()]
    if len(pieces) > 1:
        effects = tuple(e for e in (parse_effect(p) for p in pieces) if e is not None)
        if len(effects) > 1:
            return effects
    return (whole,) if whole is not None else ()


# =============================================================================
# Abilities
# =============================================================================

def parse_activated_ability(segment: str) -> Optional[ParsedAbility]:
    """``<cost>: <effect>``. A recognized cost with no known effect is kept, inert."""
    match = ACTIVATED_RE.match(segment)
    if not match:
        return None
    cost = parse_cost(match.group(1))
    if cost is None:
        return None
    return ParsedAbility(
        kind=AbilityKind.ACTIVATED,
        raw_text=segment,
        cost=cost,
        effects=parse_effects(match.group(2)),
    )


def classify_trigger(condition: str, landfall: bool = False) -> Optional[TriggerEvent]:
    """Map a trigger condition to a TriggerEvent. First match wins."""
    lower = condition.lower()
    if landfall or re.search(r'\ba land\b.*\benters\b|\blands? you control enters?\b', lower):
        return TriggerEvent.LANDFALL
    if re.search(r'\bdies\b', lower):
        if "another creature" in lower or re.search(r'\bcreatures?\b', lower):
            return TriggerEvent.DIES_OTHER_CREATURE
        return TriggerEvent.DIES
    if re.search(r'\benters\b', lower):
        return TriggerEvent.ENTERS_BATTLEFIELD
    if re.search(r'deals combat damage to (?:a player|an opponent|one or more players)', lower):
        return TriggerEvent.DEALS_COMBAT_DAMAGE_TO_PLAYER
    if re.search(r'\bdeals (?:combat )?damage\b', lower):
        return TriggerEvent.DEALS_DAMAGE
    if re.search(r'\battacks\b', lower):
        return TriggerEvent.ATTACKS
    if re.search(r'\bcasts?\b', lower):
        return TriggerEvent.CAST_SPELL
    if "counter" in lower and re.search(r'\bput\b|\bplaced\b', lower):
        return TriggerEvent.PUT_COUNTER
    if "upkeep" in lower:
        return TriggerEvent.UPKEEP
    return None


_NON_TRIBAL_WORDS = {"Instant", "Sorcery", "Creature", "Artifact", "Enchantment",
                     "Planeswalker", "Land", "Spell", "Noncreature"}


def _cast_filters(condition: str) -> Tuple[Tuple[CardType, ...], Optional[str]]:
    lower = condition.lower()
    types: List[CardType] = []
    if re.search(r'\binstant\b', lower):
        types.append(CardType.INSTANT)
    if re.search(r'\bsorcery\b', lower):
        types.append(CardType.SORCERY)
    if "creature spell" in lower:
        types.append(CardType.CREATURE)
    subtype = None
    if "shares a creature type" in lower:
        subtype = SELF_REF
    else:
        tribal = re.search(r'\bcast (?:a|an|another)\s+([A-Z][a-z]+) spell', condition)
        if tribal and tribal.group(1) not in _NON_TRIBAL_WORDS:
            subtype = tribal.group(1)
    return tuple(types), subtype


def parse_triggered_ability(segment: str) -> ParsedAbility:
    """Split a trigger into its condition and effect and classify it."""
    text = segment.strip()
    landfall = from_command_zone = False
    word = ABILITY_WORD_RE.match(text)
    if word:
        landfall = word.group(1).lower() == "landfall"
        from_command_zone = word.group(1).lower() == "eminence"
        text = text[word.end():]

    comma = text.find(",")
    if comma == -1:
        condition, effect_text = text, ""
    else:
        condition, effect_text = text[:comma].strip(), text[comma + 1:].strip()
        intervening_if = re.match(r'^if\b[^,]*,\s*', effect_text, re.IGNORECASE)
        if intervening_if:
            effect_text = effect_text[intervening_if.end():]

    trigger = classify_trigger(condition, landfall)
    spell_types, spell_subtype = ((), None)
    if trigger is TriggerEvent.CAST_SPELL:
        spell_types, spell_subtype = _cast_filters(condition)
    return ParsedAbility(
        kind=AbilityKind.TRIGGERED,
        raw_text=segment,
        effects=parse_effects(effect_text),
        trigger=trigger,
        condition=condition,
        spell_types=spell_types,
        spell_subtype=spell_subtype,
        from_command_zone=from_command_zone,
    )


def _parse_segment(segment: str) -> List[ParsedAbility]:
    if TRIGGER_START_RE.match(segment):
        return [parse_triggered_ability(segment)]
    activated = parse_activated_ability(segment)
    if activated is not None:
        return [activated]
    keywords = extract_keywords(segment)
    if keywords and _is_keyword_line(segment, keywords):
        return [ParsedAbility(kind=AbilityKind.KEYWORD, raw_text=kw, keyword=kw)
                for kw in keywords]
    if keywords:
        return [ParsedAbility(kind=AbilityKind.STATIC, raw_text=segment)]
    return []


def _scan_multi_sentence(text: str) -> Tuple[str, List[ParsedAbility]]:
    """Match idioms spanning sentences and replace them with markers."""
    combined: List[ParsedAbility] = []

    def substitute(match: 're.Match') -> str:
        effect = _sacrifice_search("sacrifice it, then " + match.group(1))
        combined.append(ParsedAbility(
            kind=AbilityKind.TRIGGERED,
            raw_text=match.group(0),
            effects=(effect,) if effect else (),
            trigger=TriggerEvent.ENTERS_BATTLEFIELD,
            condition=f"When {SELF_REF} enters",
        ))
        return f"{MULTI_MARKER}{len(combined) - 1}. "

    return ETB_SACRIFICE_SEARCH_RE.sub(substitute, text), combined


def parse_card_abilities(card: CardLike) -> List[ParsedAbility]:
    """All abilities of a card, in text order.

    Pure: the same card text always gives an equal list. Instants and
    sorceries yield their spell ability.
    """
    definition = _definition(card)
    if not definition.text:
        return []
    if definition.is_instant_or_sorcery:
        spell = parse_spell_effect(definition)
        return [spell] if spell is not None else []

    text, combined = _scan_multi_sentence(normalize_text(definition))
    abilities: List[ParsedAbility] = []
    for segment in split_segments(text):
        if segment.startswith(MULTI_MARKER):
            abilities.append(combined[int(segment[len(MULTI_MARKER):])])
            continue
        abilities.extend(_parse_segment(segment))
    return abilities


def unrecognized_segments(card: CardLike) -> List[str]:
    """Sentences that produced no ability or only an inert one."""
    definition = _definition(card)
    if definition.is_instant_or_sorcery:
        spell = parse_spell_effect(definition)
        return [definition.text] if spell is not None and spell.is_inert else []
    text, combined = _scan_multi_sentence(normalize_text(definition))
    missing = []
    for segment in split_segments(text):
        if segment.startswith(MULTI_MARKER):
            continue
        parsed = _parse_segment(segment)
        if not parsed or all(a.is_inert and a.kind is not AbilityKind.KEYWORD for a in parsed):
            missing.append(segment)
    return missing


def has_keyword(card: CardLike, keyword: str) -> bool:
    keyword = keyword.lower()
    return any(a.kind is AbilityKind.KEYWORD and a.keyword == keyword
               for a in parse_card_abilities(card))


def activatable_abilities(player: Player, card: CardInstance) -> List[ParsedAbility]:
    """Activated abilities of ``card`` whose full cost ``player`` can pay now.

    Inert abilities are left out since activating them does nothing.
    """
    return [a for a in parse_card_abilities(card)
            if a.kind is AbilityKind.ACTIVATED and not a.is_inert
            and can_pay_ability_cost(player, card, a.cost)]


# =============================================================================
# Spells
# =============================================================================

def count_mana_colors(spent: ManaPool) -> int:
    """Distinct colors (not colorless) among the mana spent."""
    return sum(1 for color in (Color.WHITE, Color.BLUE, Color.BLACK, Color.RED, Color.GREEN)
               if spent.get(color) > 0)


def parse_spell_effect(card: CardLike) -> Optional[ParsedAbility]:
    """Effects of an instant or sorcery, read from its full text.

    Converge effects carry VariableAmount.CONVERGE; the amount is the number
    of colors spent, known only when the spell resolves.

    Returns:
        The spell ability (possibly inert), or None for non-spells.
    """
    definition = _definition(card)
    if not definition.is_instant_or_sorcery or not definition.text:
        return None
    text = normalize_text(definition)
    lower = text.lower()

    if "converge" in lower:
        effects: List[AbilityEffect] = []
        if re.search(r'\bdraws?\b', lower):
            effects.append(AbilityEffect(EffectType.DRAW_CARD, amount=0, target=TargetKind.CONTROLLER,
                                         variable=VariableAmount.CONVERGE))
        if re.search(r'\bloses?\b', lower) and "life" in lower:
            effects.append(AbilityEffect(EffectType.LOSE_LIFE, amount=0, target=TargetKind.CONTROLLER,
                                         variable=VariableAmount.CONVERGE))
        if re.search(r'\bgains?\b', lower) and "life" in lower:
            effects.append(AbilityEffect(EffectType.GAIN_LIFE, amount=0, target=TargetKind.CONTROLLER,
                                         variable=VariableAmount.CONVERGE))
        if re.search(r'\bdamage\b', lower):
            damage = _deal_damage(re.sub(r'\bX\b', "0", text)) or \
                AbilityEffect(EffectType.DEAL_DAMAGE, target=TargetKind.ANY_TARGET)
            effects.append(AbilityEffect(EffectType.DEAL_DAMAGE, amount=0, target=damage.target,
                                         variable=VariableAmount.CONVERGE))
        if effects:
            return ParsedAbility(kind=AbilityKind.SPELL, raw_text=definition.text,
                                 effects=tuple(effects), spell_keyword="converge")

    effects_found: List[AbilityEffect] = []
    for sentence in split_segments(text):
        if OTHER_CONTROLLER_RE.match(sentence):
            continue
        effects_found.extend(parse_effects(sentence))
    return ParsedAbility(kind=AbilityKind.SPELL, raw_text=definition.text,
                         effects=tuple(effects_found))
