"""Aggregation layer for pokemasdb.

Walks parsed trainers once and builds the derived lookup caches:
- trainers by name
- moves by name, with the sync pairs that use them
- passive skills by name, with innate and sync grid users
- pokemon by name, with forms grouped into shared buckets
- theme skills by name, with the sync pairs that have them

Every cache is frozen before it is returned. Any error aborts the whole run;
no partially built cache is ever handed out.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .entities import Creature, GridNode, Move, Passive, ThemeSkill, Trainer
from .keymap import NormalizedKeyMap
from .sequence import FrozenSequence

logger = logging.getLogger(__name__)

PLAYER_TRAINER = "Player"
# "Mewtwo" contains "Mew" but is a different species.
FORM_EXCLUDED_NAMES = ("Mew",)

SKILL_GROUP_DESCRIPTION = "This is a group of passive skills {name} 1-9."


def _append_user(users: FrozenSequence[Creature], creature: Creature) -> bool:
    """Append ``creature`` unless a pair with the same label is already listed."""
    label = creature.label
    if any(user.label == label for user in users):
        return False
    users.append(creature)
    return True


class MoveNode:
    """A move and every sync pair that can use it."""

    def __init__(self, move: Move):
        self.move = move
        self.users: FrozenSequence[Creature] = FrozenSequence()

    def add(self, creature: Creature) -> "MoveNode":
        _append_user(self.users, creature)
        return self

    def freeze(self) -> None:
        self.users.freeze()

    @property
    def user_labels(self) -> List[str]:
        return [user.label for user in self.users]

    @property
    def user_pokemon_names(self) -> List[str]:
        return [user.name for user in self.users]

    @property
    def user_trainer_names(self) -> List[str]:
        return [user.trainer for user in self.users]

    def to_json(self) -> Dict[str, Any]:
        return {"move": self.move.to_json(), "users": self.user_labels}

    def __repr__(self) -> str:
        return f"MoveNode({self.move.name!r}, {len(self.users)} users)"


class SkillNode:
    """A passive skill with the sync pairs that have it innately or on their grid."""

    def __init__(self, skill: Passive):
        self.skill = skill
        self.inbuilt: FrozenSequence[Creature] = FrozenSequence()
        self.in_grid: FrozenSequence[Creature] = FrozenSequence()

    def add(self, creature: Creature, is_grid: bool) -> "SkillNode":
        _append_user(self.in_grid if is_grid else self.inbuilt, creature)
        return self

    def freeze(self) -> None:
        self.inbuilt.freeze()
        self.in_grid.freeze()

    @property
    def inbuilt_labels(self) -> List[str]:
        return [user.label for user in self.inbuilt]

    @property
    def in_grid_labels(self) -> List[str]:
        return [user.label for user in self.in_grid]

    def to_json(self) -> Dict[str, Any]:
        return {
            "skill": self.skill.to_json(),
            "inbuilt": self.inbuilt_labels,
            "inGrid": self.in_grid_labels,
        }

    def __repr__(self) -> str:
        return (
            f"SkillNode({self.skill.name!r}, "
            f"{len(self.inbuilt)} inbuilt, {len(self.in_grid)} in grid)"
        )


class ThemeNode:
    """A theme skill and the sync pairs that have it."""

    def __init__(self, skill: ThemeSkill):
        self.skill = skill
        self.pokemon: FrozenSequence[Creature] = FrozenSequence()

    def add(self, creature: Creature) -> "ThemeNode":
        _append_user(self.pokemon, creature)
        return self

    def freeze(self) -> None:
        self.pokemon.freeze()

    @property
    def user_labels(self) -> List[str]:
        return [user.label for user in self.pokemon]

    def to_json(self) -> Dict[str, Any]:
        return {"themeSkill": self.skill.to_json(), "pokemon": self.user_labels}

    def __repr__(self) -> str:
        return f"ThemeNode({self.skill.name!r}, {len(self.pokemon)} pokemon)"


@dataclass(frozen=True)
class DerivedCaches:
    """The published result of one aggregation run."""

    trainers: NormalizedKeyMap[Trainer]
    moves: NormalizedKeyMap[MoveNode]
    skills: NormalizedKeyMap[SkillNode]
    pokemon: NormalizedKeyMap[FrozenSequence[Creature]]
    themes: NormalizedKeyMap[ThemeNode]
    creature_count: int
    processing_seconds: float
    built_at: datetime

    def get_trainer(self, name: Any) -> Optional[Trainer]:
        return self.trainers.get(name)

    def get_move(self, name: Any) -> Optional[MoveNode]:
        return self.moves.get(name)

    def get_skill(self, name: Any) -> Optional[SkillNode]:
        return self.skills.get(name)

    def get_pokemon(self, name: Any) -> Optional[FrozenSequence[Creature]]:
        return self.pokemon.get(name)

    def get_theme(self, name: Any) -> Optional[ThemeNode]:
        return self.themes.get(name)

    def summary(self) -> str:
        return (
            f"trainers={len(self.trainers)}, "
            f"pokemon={self.creature_count}, "
            f"moves={len(self.moves)}, "
            f"skills={len(self.skills)}, "
            f"themes={len(self.themes)}, "
            f"names={len(self.pokemon)}, "
            f"seconds={self.processing_seconds:.3f}"
        )


# ---------------------------------------------------------------------------
# Build steps
# ---------------------------------------------------------------------------


def _register_move(moves: NormalizedKeyMap[MoveNode], creature: Creature, move: Move) -> None:
    moves.get_or_create(move.name, lambda: MoveNode(move)).add(creature)


def skill_group_name(name: str) -> Optional[str]:
    """Return the umbrella name of a numbered skill (``"Sharp Blade 3"`` -> ``"Sharp Blade"``)."""
    if len(name) < 2 or not name[-1].isdigit():
        return None
    return name[:-2]


def _register_skill(
    skills: NormalizedKeyMap[SkillNode],
    creature: Creature,
    passive: Passive,
    is_grid: bool,
) -> None:
    skills.get_or_create(passive.name, lambda: SkillNode(passive)).add(creature, is_grid)

    group = skill_group_name(passive.name)
    if group:
        grouped = Passive(group, SKILL_GROUP_DESCRIPTION.format(name=group))
        skills.get_or_create(group, lambda: SkillNode(grouped)).add(creature, is_grid)


def grid_skill_names(node: GridNode) -> List[str]:
    """Skill names a sync grid tile registers under (none for plain stat boosts)."""
    if not node.is_skill:
        return []
    names: List[str] = []
    if ":" in node.title:
        alternate = node.title.partition(":")[2]
        if alternate:
            names.append(alternate)
    names.append(node.title.replace(":", ": "))
    return names


def _register_grid(skills: NormalizedKeyMap[SkillNode], creature: Creature, node: GridNode) -> None:
    for name in grid_skill_names(node):
        _register_skill(skills, creature, Passive(name, node.description), is_grid=True)


def group_forms(
    pokemon: NormalizedKeyMap[FrozenSequence[Creature]],
    player: Optional[Trainer],
) -> int:
    """Merge the buckets of names that are forms of one another.

    For every ordered pair of distinct names where ``name2`` contains
    ``name1``, ``name2`` absorbs ``name1``'s creatures and both names then
    share one bucket. Skipped when ``name2`` is on the "Player" trainer's
    roster or when ``name1`` is one of ``FORM_EXCLUDED_NAMES``.

    This is a naming heuristic, not a species relation; other aliasing cases
    in the game data are not handled. Returns the number of merges made.
    """
    merges = 0
    names = pokemon.keys()
    for name1 in names:
        for name2 in names:
            if name1 not in name2 or name1 == name2:
                continue
            if player is not None and player.has_pokemon(name2):
                continue
            if name1 in FORM_EXCLUDED_NAMES:
                continue

            target = pokemon[name2]
            source = pokemon[name1]
            if source is not target:
                for creature in list(source):
                    if not any(existing is creature for existing in target):
                        target.append(creature)
            pokemon.put(name1, target)
            pokemon.put(name2, target)
            merges += 1
            logger.debug("Categorized %s into %s's data", name1, name2)
    return merges


def build_caches(trainers: Iterable[Trainer]) -> DerivedCaches:
    """Run the aggregation over ``trainers`` and return frozen caches."""
    started = time.perf_counter()

    trainer_cache: NormalizedKeyMap[Trainer] = NormalizedKeyMap()
    move_cache: NormalizedKeyMap[MoveNode] = NormalizedKeyMap()
    skill_cache: NormalizedKeyMap[SkillNode] = NormalizedKeyMap()
    pokemon_cache: NormalizedKeyMap[FrozenSequence[Creature]] = NormalizedKeyMap()
    theme_cache: NormalizedKeyMap[ThemeNode] = NormalizedKeyMap()

    ordered: List[Trainer] = list(trainers)
    for trainer in ordered:
        trainer_cache.put(trainer.name, trainer)

    creature_count = 0
    for trainer in ordered:
        for creature in trainer.pokemon_data:
            for move in creature.moves:
                _register_move(move_cache, creature, move)
            for passive in creature.passives:
                _register_skill(skill_cache, creature, passive, is_grid=False)
            for node in creature.grid:
                _register_grid(skill_cache, creature, node)
            for theme in creature.theme_skills:
                theme_cache.get_or_create(theme.name, lambda: ThemeNode(theme)).add(creature)
            pokemon_cache.get_or_create(creature.name, FrozenSequence).append(creature)
            creature_count += 1
            logger.debug("Processed %s", creature.label)
    logger.info(
        "Processed %d pokemon from %d trainers: %d moves, %d skills",
        creature_count,
        len(ordered),
        len(move_cache),
        len(skill_cache),
    )

    # The roster exclusion applies to the trainer named exactly "Player".
    player = {trainer.name: trainer for trainer in ordered}.get(PLAYER_TRAINER)
    merges = group_forms(pokemon_cache, player)
    logger.info("Categorized %d pokemon names (%d form merges)", len(pokemon_cache), merges)

    for bucket in pokemon_cache.values():
        bucket.freeze()
    for move_node in move_cache.values():
        move_node.freeze()
    for skill_node in skill_cache.values():
        skill_node.freeze()
    for theme_node in theme_cache.values():
        theme_node.freeze()
    for cache in (trainer_cache, move_cache, skill_cache, pokemon_cache, theme_cache):
        cache.freeze()

    elapsed = time.perf_counter() - started
    return DerivedCaches(
        trainers=trainer_cache,
        moves=move_cache,
        skills=skill_cache,
        pokemon=pokemon_cache,
        themes=theme_cache,
        creature_count=creature_count,
        processing_seconds=elapsed,
        built_at=datetime.now(timezone.utc),
    )
