"""
Pytest configuration and fixtures for pokemasdb tests.

The ``make_*`` fixtures return builders for raw JSON records shaped like the
pokemasdb.com payloads, so each test only spells out the fields it cares
about.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import pytest

from pokemasdb.entities import Trainer


def _move_json(name: str = "Flamethrower", **overrides: Any) -> Dict[str, Any]:
    data = {
        "name": name,
        "type": "Fire",
        "category": "Special",
        "power": {"min_power": 90, "max_power": 108},
        "accuracy": 100,
        "target": "An opponent",
        "cost": 2,
        "uses": None,
        "effect": "No additional effect.",
        "unlock_requirements": [],
    }
    data.update(overrides)
    return data


def _sync_move_json(name: str = "Blazing Burst", **overrides: Any) -> Dict[str, Any]:
    data = {
        "name": name,
        "type": "Fire",
        "category": "Special",
        "power": {"min_power": 200, "max_power": 240},
        "target": "An opponent",
        "effect_tag": "",
        "description": "A sync move.",
    }
    data.update(overrides)
    return data


def _stats_json(hp: str = "400", bulk: Optional[str] = None) -> List[List[str]]:
    stats = [
        ["HP", hp],
        ["ATK", "200"],
        ["DEF", "150"],
        ["Sp. ATK", "220"],
        ["Sp. DEF", "140"],
        ["Speed", "180"],
    ]
    if bulk is not None:
        stats.append(["Bulk", bulk])
    return stats


def _grid_json(bonus: str = "HP +10", pos: str = "(1,2)", **overrides: Any) -> Dict[str, Any]:
    data = {
        "bonus": bonus,
        "syncOrbCost": "6",
        "energyCost": "12",
        "reqSyncLevel": "1",
        "gridPos": pos,
    }
    data.update(overrides)
    return data


def _theme_json(
    name: str = "Kanto Crew",
    tag: str = "Kanto",
    category: str = "Region",
    **overrides: Any,
) -> Dict[str, Any]:
    data = {
        "name": name,
        "tag": tag,
        "category": category,
        "condition": f"3 or more {tag} sync pairs on the team",
        "effects": [{"description": "Raises HP.", "values": [5, 10, 15]}],
    }
    data.update(overrides)
    return data


def _creature_json(
    name: str = "Charizard",
    trainer: str = "Blue",
    moves: Optional[List[Dict[str, Any]]] = None,
    passives: Optional[List[Dict[str, Any]]] = None,
    grid: Optional[List[Dict[str, Any]]] = None,
    **overrides: Any,
) -> Dict[str, Any]:
    data = {
        "name": name,
        "trainer": trainer,
        "typing": ["Fire", "Flying"],
        "weakness": "Rock",
        "role": "Strike (Special)",
        "rarity": "5",
        "gender": "Male",
        "otherForms": [],
        "moves": [_move_json()] if moves is None else moves,
        "syncMove": _sync_move_json(),
        "passives": [] if passives is None else passives,
        "stats": {"base": _stats_json("400"), "max": _stats_json("600")},
        "grid": [] if grid is None else grid,
    }
    data.update(overrides)
    return data


def _trainer_json(
    name: str = "Blue",
    pokemon_data: Optional[List[Dict[str, Any]]] = None,
    rarity: int = 5,
    pokemon: Optional[List[str]] = None,
) -> Dict[str, Any]:
    pokemon_data = [] if pokemon_data is None else pokemon_data
    return {
        "name": name,
        "rarity": rarity,
        "pokemon": [p["name"] for p in pokemon_data] if pokemon is None else pokemon,
        "pokemonData": pokemon_data,
    }


@pytest.fixture
def make_move() -> Callable[..., Dict[str, Any]]:
    return _move_json


@pytest.fixture
def make_sync_move() -> Callable[..., Dict[str, Any]]:
    return _sync_move_json


@pytest.fixture
def make_stats() -> Callable[..., List[List[str]]]:
    return _stats_json


@pytest.fixture
def make_grid() -> Callable[..., Dict[str, Any]]:
    return _grid_json


@pytest.fixture
def make_theme() -> Callable[..., Dict[str, Any]]:
    return _theme_json


@pytest.fixture
def make_creature() -> Callable[..., Dict[str, Any]]:
    return _creature_json


@pytest.fixture
def make_trainer() -> Callable[..., Dict[str, Any]]:
    return _trainer_json


@pytest.fixture
def sample_trainers() -> List[Trainer]:
    """A small roster covering forms, numbered skills, grid skills and theme skills."""
    blue = _trainer_json(
        "Blue",
        [
            _creature_json(
                "Charizard",
                "Blue",
                moves=[_move_json("Flamethrower"), _move_json("Air Slash", type="Flying")],
                passives=[{"name": "Sharp Blade 3", "description": "Raises critical rate."}],
                grid=[
                    _grid_json("+10% HP", "(0,1)"),
                    _grid_json("Flame Boost:Fire Up 2- Powers up fire moves.", "(1,1)"),
                ],
                themeSkills=[_theme_json()],
            ),
        ],
    )
    red = _trainer_json(
        "Red",
        [
            _creature_json(
                "Mega Charizard Y",
                "Red",
                moves=[_move_json("Flamethrower")],
                themeSkills=[_theme_json(), _theme_json("Fire Squad", "Fire", "Type")],
            ),
            _creature_json("Mewtwo", "Red", moves=[_move_json("Psystrike", type="Psychic")]),
        ],
    )
    player = _trainer_json(
        "Player",
        [_creature_json("Mew", "Player", moves=[_move_json("Psychic", type="Psychic")])],
    )
    return [Trainer.parse(t) for t in (blue, red, player)]
