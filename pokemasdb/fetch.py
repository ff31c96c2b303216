"""Fetch CLI and transport layer for pokemasdb trainer data.

Downloads the trainer list and every trainer record from pokemasdb.com,
parses them into entities and feeds them to a ``CacheRegistry``. Each
record is requested once; any failure aborts the whole download.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import Any, Dict, List, Optional

import requests

from .cache.io import loads, read_json
from .entities import Trainer, parse_trainer_list
from .errors import ConnectionClosedError, LookupFailure, PokemasDBError, TrainerNotFoundError
from .naming import resolve_trainer_path
from .registry import CacheRegistry, CacheType, TrainerLoader

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.json"
DEFAULT_BASE_URL = "https://www.pokemasdb.com/trainer/"
DEFAULT_TIMEOUT_SECONDS = 30.0


def load_config(config_path: str) -> Dict:
    """Load JSON configuration from ``config_path``.

    Raises ``RuntimeError`` if the file is missing or invalid.
    """
    data = read_json(config_path)
    if not data:
        raise RuntimeError(f"Missing or invalid config: {config_path}")
    return data


class Connection:
    """HTTP access to the pokemasdb trainer endpoint.

    Wraps a ``requests.Session``; usable as a context manager. Once closed,
    every request raises ``ConnectionClosedError``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        use_https: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = self._with_scheme(base_url, use_https)
        self.timeout = timeout
        self.use_https = use_https
        self._session: Optional[requests.Session] = session or requests.Session()
        self.bytes_downloaded = 0

    @staticmethod
    def _with_scheme(base_url: str, use_https: bool) -> str:
        base_url = base_url if base_url.endswith("/") else base_url + "/"
        if not use_https and base_url.startswith("https://"):
            return "http://" + base_url[len("https://"):]
        return base_url

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], session: Optional[requests.Session] = None) -> "Connection":
        return cls(
            cfg.get("pokemasdb_base_url", DEFAULT_BASE_URL),
            timeout=float(cfg.get("request_timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            use_https=bool(cfg.get("use_https", True)),
            session=session,
        )

    @property
    def closed(self) -> bool:
        return self._session is None

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get_text(self, path: str, trainer: Optional[str] = None) -> str:
        if self._session is None:
            raise ConnectionClosedError()
        url = self.base_url + path
        try:
            resp = self._session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            if trainer is not None:
                raise TrainerNotFoundError(trainer, url, reason=str(exc)) from exc
            raise LookupFailure(url, reason=str(exc)) from exc

        if resp.status_code >= 400:
            if trainer is not None:
                raise TrainerNotFoundError(trainer, url, status_code=resp.status_code)
            raise LookupFailure(url, status_code=resp.status_code)

        text = resp.text or ""
        self.bytes_downloaded += len(text)
        return text

    def request_trainer_list(self) -> str:
        """Return the raw ``{"trainers": [...]}`` listing."""
        return self._get_text("")

    def request_trainer(self, name: str) -> str:
        """Return the raw JSON record of trainer ``name``."""
        return self._get_text(resolve_trainer_path(name), trainer=name)

    def fetch_trainer_list(self) -> List[Trainer]:
        return parse_trainer_list(loads(self.request_trainer_list(), "TrainerList"))

    def fetch_trainer(self, name: str) -> Trainer:
        return Trainer.parse_text(self.request_trainer(name))

    def fetch_all_trainers(self) -> List[Trainer]:
        """Download and parse every listed trainer, in listing order."""
        started = time.perf_counter()
        listing = self.fetch_trainer_list()
        logger.info("Downloaded the list of %d trainers", len(listing))

        trainers: List[Trainer] = []
        for index, entry in enumerate(listing, start=1):
            trainers.append(self.fetch_trainer(entry.name))
            logger.debug("Downloaded %s's data (%d/%d)", entry.name, index, len(listing))

        logger.info(
            "Downloaded data for all %d trainers (%d bytes in %.1fs)",
            len(trainers),
            self.bytes_downloaded,
            time.perf_counter() - started,
        )
        return trainers


def make_loader(connection: Connection) -> TrainerLoader:
    """Return a registry loader that downloads every trainer through ``connection``."""
    return connection.fetch_all_trainers


def _configure_logging(cfg: Dict[str, Any], verbose: bool) -> None:
    level_name = "DEBUG" if verbose else str(cfg.get("log_level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_build(registry: CacheRegistry) -> int:
    """Build the caches and print a one-line summary."""
    caches = registry.initialize()
    if caches is None:
        print("Caches are already being built")
        return 1
    print(f"Summary: {caches.summary()}")
    return 0


def run_lookup(registry: CacheRegistry, kind: str, name: str) -> int:
    """Build the caches, then print the entry ``name`` of cache ``kind`` as JSON."""
    if not CacheType.is_type(kind):
        print(f"Unknown cache type: {kind}")
        return 2
    cache_type = CacheType.parse(kind)

    if registry.initialize() is None:
        print("Caches are not available")
        return 1
    found = registry.lookup(cache_type, name)
    if found is None:
        print(f"No {cache_type.name.lower()} named {name!r}")
        return 1

    payload = found.to_json()
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def run_list_trainers(connection: Connection) -> int:
    for trainer in connection.fetch_trainer_list():
        print(f"- {trainer.name:20s} -> {', '.join(trainer.pokemon)}")
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(prog="pokemasdb")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("build")
    sub.add_parser("trainers")

    lookup = sub.add_parser("lookup")
    lookup.add_argument("kind", help="trainer, pokemon, skill (or passive), move, theme")
    lookup.add_argument("name")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    cfg = load_config(args.config)
    _configure_logging(cfg, args.verbose)

    with Connection.from_config(cfg) as connection:
        try:
            if args.command == "trainers":
                return run_list_trainers(connection)

            with CacheRegistry(make_loader(connection)) as registry:
                if args.command == "build":
                    return run_build(registry)
                return run_lookup(registry, args.kind, args.name)
        except PokemasDBError as exc:
            print(f"Error: {exc}")
            return 1


if __name__ == "__main__":
    sys.exit(main())
