"""
Tests for rule configuration, the CriticMarkup change preview and the CLI.

Run: python3 test_config_cli.py
From: python/
"""

import io
import json
import os
import re
import sys
import tempfile
from contextlib import redirect_stdout
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest
from pydantic import ValidationError

from interspaced.cli import main
from interspaced.config import DEFAULT_RULES, build_rules, load_rules
from interspaced.diff import render_change, render_lines
from interspaced.errors import ConfigError


def _accept(markup):
    """Applies all CriticMarkup changes."""
    return re.sub(r"\{\+\+(.*?)\+\+\}", r"\1", re.sub(r"\{--(.*?)--\}", "", markup, flags=re.S), flags=re.S)


def _reject(markup):
    """Undoes all CriticMarkup changes."""
    return re.sub(r"\{\+\+(.*?)\+\+\}", "", re.sub(r"\{--(.*?)--\}", r"\1", markup, flags=re.S), flags=re.S)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def test_defaults():
    assert DEFAULT_RULES.aggressive_spacing is True
    assert DEFAULT_RULES.preserve_tabs is False
    assert DEFAULT_RULES.max_operation_size == 100 * 1024
    assert DEFAULT_RULES.timeout_ms == 100
    assert DEFAULT_RULES.timeout == pytest.approx(0.1)
    assert "," in DEFAULT_RULES.no_space_before
    assert DEFAULT_RULES.always_space_after == frozenset("([{")
    assert DEFAULT_RULES.always_space_before == frozenset(")]}")
    print("PASS: test_defaults")


def test_rules_are_immutable():
    with pytest.raises(ValidationError):
        DEFAULT_RULES.aggressive_spacing = False
    print("PASS: test_rules_are_immutable")


def test_build_rules_merges_overrides():
    assert build_rules() is DEFAULT_RULES
    rules = build_rules({"aggressive_spacing": False, "timeout_ms": 250})
    assert rules.aggressive_spacing is False
    assert rules.timeout_ms == 250
    assert rules.no_space_after == DEFAULT_RULES.no_space_after
    # Defaults are untouched.
    assert DEFAULT_RULES.aggressive_spacing is True
    print("PASS: test_build_rules_merges_overrides")


def test_build_rules_punctuation_rules_block():
    rules = build_rules({"punctuation_rules": {"no_space_after": ",.", "always_space_before": ["»"]}})
    assert rules.no_space_after == frozenset({",", "."})
    assert rules.always_space_before == frozenset({"»"})
    assert rules.no_space_before == DEFAULT_RULES.no_space_before
    print("PASS: test_build_rules_punctuation_rules_block")


def test_build_rules_rejects_bad_values():
    bad = [
        {"unknown_knob": True},
        {"no_space_after": ["ab"]},
        {"timeout_ms": -1},
        {"max_operation_size": -5},
        {"punctuation_rules": {"no_space_sideways": ","}},
        {"punctuation_rules": ",."},
        {"no_space_after": ",", "punctuation_rules": {"no_space_after": "."}},
    ]
    for overrides in bad:
        with pytest.raises(ConfigError):
            build_rules(overrides)
    print("PASS: test_build_rules_rejects_bad_values")


def test_load_rules_from_json():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "rules.json"
        path.write_text(json.dumps({"preserve_tabs": True, "punctuation_rules": {"no_space_before": ","}}))
        rules = load_rules(path)
        assert rules.preserve_tabs is True
        assert rules.no_space_before == frozenset({","})

        with pytest.raises(ConfigError):
            load_rules(Path(tmp) / "missing.json")

        broken = Path(tmp) / "broken.json"
        broken.write_text("{not json")
        with pytest.raises(ConfigError):
            load_rules(broken)

        listing = Path(tmp) / "list.json"
        listing.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_rules(listing)
    print("PASS: test_load_rules_from_json")


# ---------------------------------------------------------------------------
# Change preview
# ---------------------------------------------------------------------------

def test_render_removal():
    old, new = "this is text I want", "this is I want"
    markup = render_change(old, new)
    assert "{--" in markup and "text" in markup
    assert "{++" not in markup
    assert _accept(markup) == new
    assert _reject(markup) == old
    print("PASS: test_render_removal")


def test_render_insertion_lines():
    old_lines, new_lines = ["hello! how are you?"], ["hello world! how are you?"]
    markup = render_lines(old_lines, new_lines)
    assert "{++" in markup and "world" in markup
    assert _accept(markup) == new_lines[0]
    assert _reject(markup) == old_lines[0]
    assert render_change("same", "same") == "same"
    print("PASS: test_render_insertion_lines")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def test_cli_remove_in_place():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "doc.txt"
        path.write_text("this is text, I want\nsecond line\n", encoding="utf-8")
        main(["remove", str(path), "1:8", "1:12"])
        assert path.read_text(encoding="utf-8") == "this is, I want\nsecond line\n"
    print("PASS: test_cli_remove_in_place")


def test_cli_remove_to_end_of_line_with_output():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "doc.txt"
        out = Path(tmp) / "out.txt"
        path.write_text("keep this, drop\n", encoding="utf-8")
        main(["remove", str(path), "1:9", "1:$", "-o", str(out)])
        assert out.read_text(encoding="utf-8") == "keep this\n"
        assert path.read_text(encoding="utf-8") == "keep this, drop\n"
    print("PASS: test_cli_remove_to_end_of_line_with_output")


def test_cli_insert_dry_run_prints_markup():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "doc.txt"
        path.write_text("hello! how are you?\n", encoding="utf-8")
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            main(["insert", str(path), "1:5", "world", "--dry-run"])
        assert "{++" in stdout.getvalue()
        assert _accept(stdout.getvalue().rstrip("\n")) == "hello world! how are you?"
        assert path.read_text(encoding="utf-8") == "hello! how are you?\n"
    print("PASS: test_cli_insert_dry_run_prints_markup")


def test_cli_uses_config_file():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "doc.txt"
        config = Path(tmp) / "rules.json"
        path.write_text("a b c\n", encoding="utf-8")
        config.write_text(json.dumps({"max_operation_size": 0}))
        with pytest.raises(SystemExit) as exc:
            main(["remove", str(path), "1:2", "1:3", "--config", str(config)])
        assert exc.value.code == 1
        assert path.read_text(encoding="utf-8") == "a b c\n"
    print("PASS: test_cli_uses_config_file")


def test_cli_reports_errors():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "doc.txt"
        path.write_text("short\n", encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            main(["remove", str(path), "1:4", "1:2"])
        assert exc.value.code == 1
        with pytest.raises(SystemExit) as exc:
            main(["insert", str(Path(tmp) / "missing.txt"), "1:0", "x"])
        assert exc.value.code == 1
        # argparse rejects malformed positions with exit code 2
        with pytest.raises(SystemExit) as exc:
            main(["insert", str(path), "one:two", "x"])
        assert exc.value.code == 2
    print("PASS: test_cli_reports_errors")


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    tests = [
        test_defaults,
        test_rules_are_immutable,
        test_build_rules_merges_overrides,
        test_build_rules_punctuation_rules_block,
        test_build_rules_rejects_bad_values,
        test_load_rules_from_json,
        test_render_removal,
        test_render_insertion_lines,
        test_cli_remove_in_place,
        test_cli_remove_to_end_of_line_with_output,
        test_cli_insert_dry_run_prints_markup,
        test_cli_uses_config_file,
        test_cli_reports_errors,
    ]

    passed = 0
    failed = 0
    for t in tests:
        try:
            t()
            passed += 1
        except Exception as e:
            print(f"FAIL: {t.__name__} — {e}")
            failed += 1

    print(f"\n{'=' * 50}")
    print(f"Results: {passed} passed, {failed} failed out of {len(tests)} tests")
    if failed > 0:
        sys.exit(1)
    else:
        print("All tests passed!")
