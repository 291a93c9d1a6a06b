"""CLI tests."""

import json

import pytest

import cli

ORDER = {
    "items": [{"id": "1", "name": "Mug", "quantity": 2, "weight": {"value": "1", "unit": "kg"},
               "value": "25.00"}],
    "origin": {"state": "CA", "country": "US"},
    "destination": {"state": "NY", "country": "US"},
}

RULES = {
    "version": 1,
    "shipping_rules": [
        {"id": "ground", "name": "Ground", "base_cost": "5.00"},
        {"id": "express", "name": "Express", "method": "express", "base_cost": "12.00"},
    ],
    "restrictions": [{"type": "destination", "message": "No shipping to KP", "countries": ["KP"]}],
}


@pytest.fixture
def order_file(tmp_path):
    path = tmp_path / "order.json"
    path.write_text(json.dumps(ORDER))
    return path


@pytest.fixture
def rules_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(RULES))
    return path


class TestQuote:
    def test_default_option(self, order_file, capsys):
        cli.main(["quote", str(order_file)])
        out = capsys.readouterr().out
        assert "Zone: national" in out
        assert "Standard Shipping" in out
        assert "$10.00" in out

    def test_with_rules_and_criteria(self, order_file, rules_file, capsys):
        cli.main(["quote", str(order_file), "--rules", str(rules_file), "--criteria", "fastest"])
        out = capsys.readouterr().out
        assert "Express" in out
        assert "Ground" not in out

    def test_restricted(self, tmp_path, rules_file, capsys):
        path = tmp_path / "kp.json"
        path.write_text(json.dumps({**ORDER, "destination": {"country": "KP"}}))
        with pytest.raises(SystemExit) as exc:
            cli.main(["quote", str(path), "--rules", str(rules_file)])
        assert exc.value.code == 1
        assert "No shipping to KP" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["quote", str(tmp_path / "nope.json")])
        assert exc.value.code == 1
        assert "File not found" in capsys.readouterr().out

    def test_invalid_order(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"items": [{"weight": {"value": "-1"}}]}))
        with pytest.raises(SystemExit):
            cli.main(["quote", str(path)])
        assert "Invalid order" in capsys.readouterr().out


class TestRules:
    def test_stats(self, rules_file, capsys):
        cli.main(["rules", "stats", str(rules_file)])
        out = capsys.readouterr().out
        assert "total_shipping_rules: 2" in out
        assert "total_restrictions: 1" in out

    def test_validate(self, rules_file, capsys):
        cli.main(["rules", "validate", str(rules_file)])
        assert "No shipping rules cover zone" not in capsys.readouterr().out

    def test_export(self, rules_file, capsys):
        cli.main(["rules", "export", str(rules_file)])
        doc = json.loads(capsys.readouterr().out)
        assert doc["version"] == 1
        assert [r["id"] for r in doc["shipping_rules"]] == ["ground", "express"]

    def test_duplicate_rule_in_file(self, tmp_path, capsys):
        path = tmp_path / "dup.json"
        rule = {"id": "a", "name": "A"}
        path.write_text(json.dumps({"version": 1, "shipping_rules": [rule, rule]}))
        with pytest.raises(SystemExit):
            cli.main(["rules", "stats", str(path)])
        assert "already exists" in capsys.readouterr().out


class TestConvertAndDistance:
    def test_weight(self, capsys):
        cli.main(["convert", "weight", "1", "kg", "g"])
        assert capsys.readouterr().out.strip() == "1 kg = 1000 g"

    def test_dimension(self, capsys):
        cli.main(["convert", "dimension", "10", "in", "cm"])
        assert capsys.readouterr().out.strip() == "10 in = 25.40 cm"

    def test_not_a_number(self, capsys):
        with pytest.raises(SystemExit):
            cli.main(["convert", "weight", "heavy", "kg", "g"])

    def test_distance(self, capsys):
        cli.main(["distance", "34.0522", "-118.2437", "40.7128", "-74.0060"])
        km = float(capsys.readouterr().out.split()[0])
        assert 3935 <= km <= 3945


class TestServe:
    def test_runs_uvicorn(self, monkeypatch):
        calls = []
        monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kw: calls.append((app, kw)))
        cli.main(["serve", "--port", "9001"])
        app, kw = calls[0]
        assert app == "shiprate.main:app"
        assert kw["port"] == 9001
        assert kw["host"] == "127.0.0.1"
