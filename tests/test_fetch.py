"""
Tests for the pokemasdb transport and CLI, with HTTP mocked out.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from pokemasdb.errors import ConnectionClosedError, LookupFailure, ParseError, TrainerNotFoundError
from pokemasdb.fetch import Connection, build_arg_parser, load_config, main, make_loader
from pokemasdb.registry import CacheRegistry, CacheState

BASE_URL = "https://www.pokemasdb.com/trainer/"


def _response(status_code=200, payload=None, text=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text if text is not None else json.dumps(payload)
    return resp


@pytest.fixture
def records(make_trainer, make_creature):
    """Listing and per-trainer payloads keyed by request URL."""
    blue = make_trainer("Blue", [make_creature("Pidgeot", "Blue")])
    red = make_trainer("Sygna Suit Red", [make_creature("Charizard", "Sygna Suit Red")])
    listing = {"trainers": [{"name": "Blue", "pokemon": ["Pidgeot"]}, {"name": "Sygna Suit Red", "pokemon": ["Charizard"]}]}
    return {
        BASE_URL: listing,
        BASE_URL + "Blue": blue,
        BASE_URL + "Sygna%20Suit%20Red": red,
    }


@pytest.fixture
def session(records):
    session = MagicMock(spec=requests.Session)

    def get(url, timeout=None):
        if url in records:
            return _response(payload=records[url])
        return _response(status_code=404, text="Not Found")

    session.get.side_effect = get
    return session


class TestConnection:
    def test_request_trainer_list(self, session):
        conn = Connection(session=session, timeout=5)
        text = conn.request_trainer_list()
        assert "Sygna Suit Red" in text
        session.get.assert_called_with(BASE_URL, timeout=5)

    def test_request_trainer_encodes_spaces(self, session):
        conn = Connection(session=session)
        conn.request_trainer("Sygna Suit Red")
        assert session.get.call_args[0][0] == BASE_URL + "Sygna%20Suit%20Red"

    def test_missing_trainer(self, session):
        conn = Connection(session=session)
        with pytest.raises(TrainerNotFoundError) as excinfo:
            conn.request_trainer("Nobody")
        assert excinfo.value.status_code == 404
        assert excinfo.value.trainer == "Nobody"
        assert str(excinfo.value) == f"Error Code 404 was returned from {BASE_URL}Nobody"

    def test_listing_failure(self):
        session = MagicMock(spec=requests.Session)
        session.get.return_value = _response(status_code=503, text="")
        with pytest.raises(LookupFailure) as excinfo:
            Connection(session=session).request_trainer_list()
        assert not isinstance(excinfo.value, TrainerNotFoundError)

    def test_transport_error_is_wrapped(self):
        session = MagicMock(spec=requests.Session)
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(TrainerNotFoundError) as excinfo:
            Connection(session=session).request_trainer("Blue")
        assert isinstance(excinfo.value.__cause__, requests.exceptions.ConnectionError)

    def test_closed_connection(self, session):
        conn = Connection(session=session)
        conn.close()
        assert conn.closed
        session.close.assert_called_once()
        with pytest.raises(ConnectionClosedError):
            conn.request_trainer_list()

    def test_http_when_https_disabled(self, session):
        conn = Connection(session=session, use_https=False)
        assert conn.base_url == "http://www.pokemasdb.com/trainer/"

    def test_from_config(self, session):
        conn = Connection.from_config(
            {"pokemasdb_base_url": "https://example.test/trainer", "request_timeout_seconds": 3},
            session=session,
        )
        assert conn.base_url == "https://example.test/trainer/"
        assert conn.timeout == 3.0

    def test_fetch_all_trainers(self, session):
        with Connection(session=session) as conn:
            trainers = conn.fetch_all_trainers()
            assert conn.bytes_downloaded > 0
        assert [t.name for t in trainers] == ["Blue", "Sygna Suit Red"]
        assert trainers[1].pokemon_data[0].name == "Charizard"

    def test_fetch_all_fails_on_one_missing_trainer(self, session, records):
        del records[BASE_URL + "Blue"]
        with pytest.raises(TrainerNotFoundError):
            Connection(session=session).fetch_all_trainers()

    def test_fetch_all_fails_on_bad_record(self, session, records):
        records[BASE_URL + "Blue"] = {"name": "Blue"}
        with pytest.raises(ParseError):
            Connection(session=session).fetch_all_trainers()


class TestRegistryIntegration:
    def test_registry_with_connection_loader(self, session):
        registry = CacheRegistry(make_loader(Connection(session=session)))
        caches = registry.initialize()
        assert caches.get_pokemon("pidgeot")[0].trainer == "Blue"
        assert caches.get_trainer("sygna suit red").data.endswith("Sygna%20Suit%20Red")

    def test_lookup_failure_leaves_registry_uninitialized(self, session, records):
        del records[BASE_URL + "Sygna%20Suit%20Red"]
        registry = CacheRegistry(make_loader(Connection(session=session)))
        with pytest.raises(TrainerNotFoundError):
            registry.initialize()
        assert registry.state is CacheState.UNINITIALIZED


class TestConfig:
    def test_load_config(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"log_level": "DEBUG"}), encoding="utf-8")
        assert load_config(str(path)) == {"log_level": "DEBUG"}

    def test_missing_config(self, tmp_path):
        with pytest.raises(RuntimeError, match="Missing or invalid config"):
            load_config(str(tmp_path / "absent.json"))


class TestCli:
    @pytest.fixture
    def config_path(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"pokemasdb_base_url": BASE_URL, "log_level": "WARNING"}), encoding="utf-8")
        return str(path)

    def test_parser(self):
        args = build_arg_parser().parse_args(["lookup", "passive", "Sharp Blade"])
        assert (args.command, args.kind, args.name) == ("lookup", "passive", "Sharp Blade")

    def test_no_command(self, capsys):
        assert main([]) == 2

    def test_build(self, session, config_path, capsys):
        with patch("pokemasdb.fetch.requests.Session", return_value=session):
            assert main(["--config", config_path, "build"]) == 0
        assert "Summary: trainers=2" in capsys.readouterr().out

    def test_lookup_found(self, session, config_path, capsys):
        with patch("pokemasdb.fetch.requests.Session", return_value=session):
            assert main(["--config", config_path, "lookup", "move", "flamethrower"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["users"] == ["Blue's Pidgeot", "Sygna Suit Red's Charizard"]

    def test_lookup_theme(self, session, config_path, records, make_trainer, make_creature, make_theme, capsys):
        records[BASE_URL + "Blue"] = make_trainer("Blue", [make_creature("Pidgeot", "Blue", themeSkills=[make_theme()])])
        with patch("pokemasdb.fetch.requests.Session", return_value=session):
            assert main(["--config", config_path, "lookup", "theme", "Kanto Crew"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["themeSkill"]["tag"] == "Kanto"
        assert out["pokemon"] == ["Blue's Pidgeot"]

    def test_lookup_missing(self, session, config_path, capsys):
        with patch("pokemasdb.fetch.requests.Session", return_value=session):
            assert main(["--config", config_path, "lookup", "pokemon", "Missingno"]) == 1
        assert "No pokemon named 'Missingno'" in capsys.readouterr().out

    def test_lookup_unknown_kind(self, session, config_path):
        with patch("pokemasdb.fetch.requests.Session", return_value=session):
            assert main(["--config", config_path, "lookup", "item", "Potion"]) == 2

    def test_trainers(self, session, config_path, capsys):
        with patch("pokemasdb.fetch.requests.Session", return_value=session):
            assert main(["--config", config_path, "trainers"]) == 0
        assert "Sygna Suit Red" in capsys.readouterr().out

    def test_download_error(self, session, config_path, records, capsys):
        del records[BASE_URL + "Blue"]
        with patch("pokemasdb.fetch.requests.Session", return_value=session):
            assert main(["--config", config_path, "build"]) == 1
        assert "Error Code 404" in capsys.readouterr().out
