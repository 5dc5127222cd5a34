"""Tests for stackforge.engine.anchors."""

from __future__ import annotations

import pytest

from stackforge.engine.anchors import Anchor, AnchorKind
from stackforge.engine.errors import AnchorError

pytestmark = pytest.mark.unit

ROUTES = 'Rails.application.routes.draw do\n  get "up"\nend\n'


class TestAnchorLocate:
    def test_start_of_file(self):
        assert Anchor.start_of_file().locate(ROUTES) == 0

    def test_end_of_file(self):
        assert Anchor.end_of_file().locate(ROUTES) == len(ROUTES)

    def test_after_returns_match_end(self):
        offset = Anchor.after(r"^.*routes\.draw do\n").locate(ROUTES)
        assert ROUTES[offset:].startswith('  get "up"')

    def test_before_returns_match_start(self):
        offset = Anchor.before(r"^end$").locate(ROUTES)
        assert ROUTES[offset:] == "end\n"

    def test_pattern_is_multiline(self):
        assert Anchor.before(r"^  get").locate(ROUTES) == ROUTES.index("  get")

    def test_absent_pattern_raises(self):
        with pytest.raises(AnchorError, match="not found"):
            Anchor.after(r"^class Application").locate(ROUTES, "config/routes.rb")

    def test_ambiguous_pattern_raises(self):
        text = "end\nend\n"
        with pytest.raises(AnchorError, match=r"ambiguous .*\(2 matches\)"):
            Anchor.before(r"^end$").locate(text, "x.rb")

    def test_invalid_regex_raises_anchor_error(self):
        with pytest.raises(AnchorError, match="Invalid anchor pattern"):
            Anchor.after("(unclosed").locate(ROUTES)

    def test_pattern_anchor_without_pattern_raises(self):
        with pytest.raises(AnchorError):
            Anchor(kind=AnchorKind.AFTER).locate(ROUTES)

    def test_error_carries_path(self):
        with pytest.raises(AnchorError) as exc_info:
            Anchor.after("nope").locate(ROUTES, "config/routes.rb")
        assert exc_info.value.path == "config/routes.rb"


class TestAnchorModel:
    def test_describe(self):
        assert Anchor.start_of_file().describe() == "start of file"
        assert Anchor.end_of_file().describe() == "end of file"
        assert Anchor.after("x").describe() == "after /x/"
        assert Anchor.before("y").describe() == "before /y/"

    def test_is_frozen(self):
        anchor = Anchor.after("x")
        with pytest.raises(Exception):
            anchor.pattern = "y"

    def test_validates_from_dict(self):
        anchor = Anchor.model_validate({"kind": "before", "pattern": "^end$"})
        assert anchor == Anchor.before("^end$")
