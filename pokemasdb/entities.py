"""Entity model for pokemasdb trainer records.

Every entity is an immutable dataclass with:
- ``parse(value)``: build the entity from a decoded JSON value, raising
  ``ParseError`` when a required field is missing or has the wrong type
- ``to_json()``: the canonical JSON value tree (field order is binding)

``parse(e.to_json()) == e`` holds for every entity.

Numeric fields that the source ships as display text (stats, grid costs,
rarity) go through ``naming.to_int``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, TypeVar

from .cache.io import dumps, loads
from .errors import ParseError
from .naming import resolve_trainer_path, to_int, user_label
from .sequence import FrozenSequence

T = TypeVar("T")

TRAINER_IMAGE_URL = "https://pokemasdb.com/trainer/image/{path}.png"
TRAINER_DATA_URL = "https://pokemasdb.com/trainer/{path}"

STAT_LABELS = ("HP", "ATK", "DEF", "Sp. ATK", "Sp. DEF", "Speed")
BULK_LABEL = "Bulk"

MAX_MOVES = 4


def max_power_of(min_power: int) -> int:
    """Maximum move power: 1.2x the minimum, rounded half up."""
    return math.floor(1.2 * min_power + 0.5)


# ---------------------------------------------------------------------------
# Field extraction helpers
# ---------------------------------------------------------------------------


def _as_object(value: Any, entity: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(entity, f"expected a JSON object, got {type(value).__name__}")
    return value


def _field(obj: Dict[str, Any], key: str, entity: str) -> Any:
    if key not in obj:
        raise ParseError(entity, f"missing field '{key}'")
    return obj[key]


def _str_field(obj: Dict[str, Any], key: str, entity: str) -> str:
    value = _field(obj, key, entity)
    if not isinstance(value, str):
        raise ParseError(entity, f"field '{key}' must be a string, got {type(value).__name__}")
    return value


def _int_field(obj: Dict[str, Any], key: str, entity: str) -> int:
    """Read an integer that may be shipped as a number or as display text."""
    value = _field(obj, key, entity)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ParseError(entity, f"field '{key}' must be a number, got {type(value).__name__}")
    return to_int(value)


def _list_field(obj: Dict[str, Any], key: str, entity: str) -> List[Any]:
    value = _field(obj, key, entity)
    if not isinstance(value, list):
        raise ParseError(entity, f"field '{key}' must be a list, got {type(value).__name__}")
    return value


def _str_tuple(obj: Dict[str, Any], key: str, entity: str) -> Tuple[str, ...]:
    items = _list_field(obj, key, entity)
    for item in items:
        if not isinstance(item, str):
            raise ParseError(entity, f"field '{key}' must only hold strings")
    return tuple(items)


def _parse_all(
    obj: Dict[str, Any],
    key: str,
    entity: str,
    parse: Callable[[Any], T],
) -> FrozenSequence[T]:
    return FrozenSequence.of((parse(item) for item in _list_field(obj, key, entity)), frozen=True)


def _frozen(items: Any) -> FrozenSequence:
    if isinstance(items, FrozenSequence):
        return items.freeze()
    return FrozenSequence.of(items, frozen=True)


class _JSONEntity:
    """Text-level helpers shared by every entity."""

    @classmethod
    def parse(cls, value: Any):  # pragma: no cover - overridden
        raise NotImplementedError

    @classmethod
    def parse_text(cls, text: str):
        """Decode JSON ``text`` and parse it into this entity."""
        return cls.parse(loads(text, cls.__name__))

    def to_json(self) -> Any:  # pragma: no cover - overridden
        raise NotImplementedError

    def to_json_string(self) -> str:
        return dumps(self.to_json())

    def __str__(self) -> str:
        return self.to_json_string()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Passive(_JSONEntity):
    """A passive skill: name plus description."""

    name: str
    description: str

    @classmethod
    def parse(cls, value: Any) -> "Passive":
        obj = _as_object(value, "Passive")
        return cls(
            name=_str_field(obj, "name", "Passive"),
            description=_str_field(obj, "description", "Passive"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description}


@dataclass(frozen=True)
class Move(_JSONEntity):
    name: str
    type: str
    category: str
    min_power: int
    accuracy: int
    target: str
    cost: int
    uses: int
    effect: str

    @property
    def max_power(self) -> int:
        return max_power_of(self.min_power)

    @classmethod
    def parse(cls, value: Any) -> "Move":
        obj = _as_object(value, "Move")
        power = _as_object(_field(obj, "power", "Move"), "Move.power")

        # The source ships an empty string for "no cost" and null for "no uses".
        raw_cost = _field(obj, "cost", "Move")
        cost = 0 if isinstance(raw_cost, str) else _int_field(obj, "cost", "Move")
        uses = 0 if _field(obj, "uses", "Move") is None else _int_field(obj, "uses", "Move")

        return cls(
            name=_str_field(obj, "name", "Move"),
            type=_str_field(obj, "type", "Move"),
            category=_str_field(obj, "category", "Move"),
            min_power=_int_field(power, "min_power", "Move.power"),
            accuracy=_int_field(obj, "accuracy", "Move"),
            target=_str_field(obj, "target", "Move"),
            cost=cost,
            uses=uses,
            effect=_str_field(obj, "effect", "Move"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "power": {"min_power": self.min_power, "max_power": self.max_power},
            "accuracy": self.accuracy,
            "target": self.target,
            "cost": "" if self.cost == 0 else self.cost,
            "uses": None if self.uses == 0 else self.uses,
            "effect": self.effect,
            "unlock_requirements": [],
        }


@dataclass(frozen=True)
class SyncMove(_JSONEntity):
    name: str
    type: str
    category: str
    min_power: int
    target: str
    effect_tag: str
    description: str

    @property
    def max_power(self) -> int:
        return max_power_of(self.min_power)

    @classmethod
    def parse(cls, value: Any) -> "SyncMove":
        obj = _as_object(value, "SyncMove")
        power = _as_object(_field(obj, "power", "SyncMove"), "SyncMove.power")
        return cls(
            name=_str_field(obj, "name", "SyncMove"),
            type=_str_field(obj, "type", "SyncMove"),
            category=_str_field(obj, "category", "SyncMove"),
            min_power=_int_field(power, "min_power", "SyncMove.power"),
            target=_str_field(obj, "target", "SyncMove"),
            effect_tag=_str_field(obj, "effect_tag", "SyncMove"),
            description=_str_field(obj, "description", "SyncMove"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "power": {"min_power": self.min_power, "max_power": self.max_power},
            "target": self.target,
            "effect_tag": self.effect_tag,
            "description": self.description,
        }


@dataclass(frozen=True)
class Stats(_JSONEntity):
    """One stat line. ``bulk`` is optional in the source and 0 when absent."""

    hp: int
    atk: int
    def_: int
    sp_atk: int
    sp_def: int
    speed: int
    bulk: int = 0

    @property
    def has_bulk(self) -> bool:
        return self.bulk != 0

    @classmethod
    def parse(cls, value: Any) -> "Stats":
        if not isinstance(value, list):
            raise ParseError("Stats", f"expected a JSON array, got {type(value).__name__}")
        if len(value) not in (len(STAT_LABELS), len(STAT_LABELS) + 1):
            raise ParseError("Stats", f"expected 6 or 7 stat pairs, got {len(value)}")

        numbers: List[int] = []
        for pair in value:
            if not isinstance(pair, list) or len(pair) < 2:
                raise ParseError("Stats", f"malformed stat pair {pair!r}")
            raw = pair[1]
            if isinstance(raw, bool) or not isinstance(raw, (int, str)):
                raise ParseError("Stats", f"stat value must be text, got {type(raw).__name__}")
            numbers.append(to_int(raw))
        if len(numbers) == len(STAT_LABELS):
            numbers.append(0)
        return cls(*numbers)

    def to_json(self) -> List[List[str]]:
        values = (self.hp, self.atk, self.def_, self.sp_atk, self.sp_def, self.speed)
        pairs = [[label, str(number)] for label, number in zip(STAT_LABELS, values)]
        if self.has_bulk:
            pairs.append([BULK_LABEL, str(self.bulk)])
        return pairs


@dataclass(frozen=True)
class StatRange(_JSONEntity):
    base: Stats
    max: Stats

    @classmethod
    def parse(cls, value: Any) -> "StatRange":
        obj = _as_object(value, "StatRange")
        return cls(
            base=Stats.parse(_field(obj, "base", "StatRange")),
            max=Stats.parse(_field(obj, "max", "StatRange")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {"base": self.base.to_json(), "max": self.max.to_json()}


def split_bonus(bonus: str) -> Tuple[str, str]:
    """Split a grid bonus into ``(title, description)`` at the first ``"- "``.

    Bonuses without a separator are plain stat boosts: title == description.
    """
    title, sep, description = bonus.partition("- ")
    if not sep:
        return bonus, bonus
    return title, description


def parse_grid_pos(grid_pos: str) -> Tuple[int, int]:
    """Parse ``"(x,y)"`` into two integers; an empty position is ``(0, 0)``."""
    if grid_pos == "":
        return 0, 0
    parts = grid_pos.strip()[1:-1].split(",")
    if len(parts) != 2:
        raise ParseError("GridNode", f"malformed grid position {grid_pos!r}")
    return to_int(parts[0].strip()), to_int(parts[1].strip())


@dataclass(frozen=True)
class GridNode(_JSONEntity):
    """A sync grid tile: a positioned bonus that may encode a passive skill."""

    bonus: str
    sync_orb_cost: int
    energy_cost: int
    req_sync_level: int
    grid_pos: str
    title: str = field(init=False, compare=False, repr=False)
    description: str = field(init=False, compare=False, repr=False)
    x: int = field(init=False, compare=False, repr=False)
    y: int = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        title, description = split_bonus(self.bonus)
        x, y = parse_grid_pos(self.grid_pos)
        object.__setattr__(self, "title", title)
        object.__setattr__(self, "description", description)
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)

    @property
    def is_skill(self) -> bool:
        return self.title != self.description

    @classmethod
    def parse(cls, value: Any) -> "GridNode":
        obj = _as_object(value, "GridNode")
        return cls(
            bonus=_str_field(obj, "bonus", "GridNode"),
            sync_orb_cost=_int_field(obj, "syncOrbCost", "GridNode"),
            energy_cost=_int_field(obj, "energyCost", "GridNode"),
            req_sync_level=_int_field(obj, "reqSyncLevel", "GridNode"),
            grid_pos=_str_field(obj, "gridPos", "GridNode"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "bonus": self.bonus,
            "syncOrbCost": str(self.sync_orb_cost),
            "energyCost": str(self.energy_cost),
            "reqSyncLevel": str(self.req_sync_level),
            "gridPos": self.grid_pos,
        }


@dataclass(frozen=True)
class ThemeEffect(_JSONEntity):
    """One effect of a theme skill, with its per-level values."""

    description: str
    values: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    @classmethod
    def parse(cls, value: Any) -> "ThemeEffect":
        obj = _as_object(value, "ThemeSkill.Effect")
        values = []
        for number in _list_field(obj, "values", "ThemeSkill.Effect"):
            if isinstance(number, bool) or not isinstance(number, (int, str)):
                raise ParseError("ThemeSkill.Effect", "field 'values' must only hold numbers")
            values.append(to_int(number))
        return cls(
            description=_str_field(obj, "description", "ThemeSkill.Effect"),
            values=tuple(values),
        )

    def to_json(self) -> Dict[str, Any]:
        return {"description": self.description, "values": list(self.values)}


@dataclass(frozen=True)
class ThemeSkill(_JSONEntity):
    """A theme skill: a tagged team bonus active under a condition."""

    Effect = ThemeEffect

    name: str
    tag: str
    category: str
    condition: str
    effects: FrozenSequence[ThemeEffect] = field(default_factory=FrozenSequence)

    def __post_init__(self):
        object.__setattr__(self, "effects", _frozen(self.effects))

    @classmethod
    def parse(cls, value: Any) -> "ThemeSkill":
        obj = _as_object(value, "ThemeSkill")
        return cls(
            name=_str_field(obj, "name", "ThemeSkill"),
            tag=_str_field(obj, "tag", "ThemeSkill"),
            category=_str_field(obj, "category", "ThemeSkill"),
            condition=_str_field(obj, "condition", "ThemeSkill"),
            effects=_parse_all(obj, "effects", "ThemeSkill", ThemeEffect.parse),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tag": self.tag,
            "category": self.category,
            "condition": self.condition,
            "effects": self.effects.to_json(),
        }


@dataclass(frozen=True)
class Creature(_JSONEntity):
    """A Pokemon as part of one trainer's sync pair."""

    name: str
    trainer: str
    typing: Tuple[str, ...]
    weakness: str
    role: str
    rarity: int
    gender: str
    other_forms: Tuple[str, ...]
    moves: FrozenSequence[Move]
    sync_move: SyncMove
    passives: FrozenSequence[Passive]
    stats: StatRange
    grid: FrozenSequence[GridNode]
    theme_skills: FrozenSequence[ThemeSkill] = field(default_factory=FrozenSequence)

    def __post_init__(self):
        if len(self.moves) > MAX_MOVES:
            raise ParseError("Creature", f"{self.name} has {len(self.moves)} moves, at most {MAX_MOVES} allowed")
        # typing is an ordered set
        object.__setattr__(self, "typing", tuple(dict.fromkeys(self.typing)))
        object.__setattr__(self, "other_forms", tuple(self.other_forms))
        object.__setattr__(self, "moves", _frozen(self.moves))
        object.__setattr__(self, "passives", _frozen(self.passives))
        object.__setattr__(self, "grid", _frozen(self.grid))
        object.__setattr__(self, "theme_skills", _frozen(self.theme_skills))

    @property
    def label(self) -> str:
        """``"<trainer>'s <name>"``: the name-based identity of a sync pair."""
        return user_label(self.trainer, self.name)

    @classmethod
    def parse(cls, value: Any) -> "Creature":
        obj = _as_object(value, "Creature")
        return cls(
            name=_str_field(obj, "name", "Creature"),
            trainer=_str_field(obj, "trainer", "Creature"),
            typing=_str_tuple(obj, "typing", "Creature"),
            weakness=_str_field(obj, "weakness", "Creature"),
            role=_str_field(obj, "role", "Creature"),
            rarity=_int_field(obj, "rarity", "Creature"),
            gender=_str_field(obj, "gender", "Creature"),
            other_forms=_str_tuple(obj, "otherForms", "Creature"),
            moves=_parse_all(obj, "moves", "Creature", Move.parse),
            sync_move=SyncMove.parse(_field(obj, "syncMove", "Creature")),
            passives=_parse_all(obj, "passives", "Creature", Passive.parse),
            stats=StatRange.parse(_field(obj, "stats", "Creature")),
            grid=_parse_all(obj, "grid", "Creature", GridNode.parse),
            theme_skills=_parse_all(obj, "themeSkills", "Creature", ThemeSkill.parse)
            if "themeSkills" in obj
            else FrozenSequence.of(frozen=True),
        )

    def to_json(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "trainer": self.trainer,
            "typing": list(self.typing),
            "weakness": self.weakness,
            "role": self.role,
            "rarity": str(self.rarity),
            "gender": self.gender,
            "otherForms": list(self.other_forms),
            "moves": self.moves.to_json(),
            "syncMove": self.sync_move.to_json(),
            "passives": self.passives.to_json(),
            "stats": self.stats.to_json(),
            "grid": self.grid.to_json(),
        }
        # Older payloads carry no theme skills; keep their shape.
        if self.theme_skills:
            data["themeSkills"] = self.theme_skills.to_json()
        return data


@dataclass(frozen=True)
class Trainer(_JSONEntity):
    """A trainer with its roster names and the parsed sync pairs."""

    name: str
    rarity: int = 1
    pokemon: Tuple[str, ...] = ()
    pokemon_data: FrozenSequence[Creature] = field(default_factory=FrozenSequence)

    def __post_init__(self):
        object.__setattr__(self, "pokemon", tuple(self.pokemon))
        object.__setattr__(self, "pokemon_data", _frozen(self.pokemon_data))

    @property
    def image(self) -> str:
        return TRAINER_IMAGE_URL.format(path=resolve_trainer_path(self.name))

    @property
    def data(self) -> str:
        return TRAINER_DATA_URL.format(path=resolve_trainer_path(self.name))

    def has_pokemon(self, name: str) -> bool:
        """Case-insensitive membership test against the roster names."""
        wanted = name.casefold()
        return any(p.casefold() == wanted for p in self.pokemon)

    @classmethod
    def parse(cls, value: Any) -> "Trainer":
        obj = _as_object(value, "Trainer")
        # Trainer list entries only carry name and roster.
        rarity = _int_field(obj, "rarity", "Trainer") if "rarity" in obj else 1
        if "pokemonData" in obj:
            pokemon_data = _parse_all(obj, "pokemonData", "Trainer", Creature.parse)
        else:
            pokemon_data = FrozenSequence.of(frozen=True)
        return cls(
            name=_str_field(obj, "name", "Trainer"),
            rarity=rarity,
            pokemon=_str_tuple(obj, "pokemon", "Trainer"),
            pokemon_data=pokemon_data,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "rarity": self.rarity,
            "pokemon": list(self.pokemon),
            "image": self.image,
            "data": self.data,
            "pokemonData": self.pokemon_data.to_json(),
        }


def parse_trainer_list(value: Any) -> List[Trainer]:
    """Parse the ``{"trainers": [...]}`` listing payload."""
    obj = _as_object(value, "TrainerList")
    return [Trainer.parse(item) for item in _list_field(obj, "trainers", "TrainerList")]
