"""Tests for item SKU generation and collision renaming."""

import re

import pytest

from wms import keys
from wms.exceptions import ConflictError


class TestGenerateSku:
    def test_empty_request_generates_default_prefix(self, db):
        sku = keys.resolve_item_sku(db)
        assert re.fullmatch(r"SKU-\d{4}-\d{3}", sku)

    def test_auto_generate_keyword_uses_prefix(self, db):
        sku = keys.resolve_item_sku(db, keys.AUTO_GENERATE, "ELEC")
        assert re.fullmatch(r"ELEC-\d{4}-\d{3}", sku)

    def test_whitespace_request_is_treated_as_empty(self, db):
        sku = keys.resolve_item_sku(db, "   ")
        assert sku.startswith("SKU-")

    def test_generated_sku_skips_taken_candidates(self, db, monkeypatch):
        taken = iter([True, True, False])
        monkeypatch.setattr(keys, "item_exists", lambda session, sku: next(taken))
        assert keys.generate_unique_sku(db, "BOX", max_attempts=5).startswith("BOX-")

    def test_generation_gives_up_after_max_attempts(self, db, monkeypatch):
        monkeypatch.setattr(keys, "item_exists", lambda session, sku: True)
        with pytest.raises(ConflictError):
            keys.generate_unique_sku(db, max_attempts=3)


class TestRequestedSku:
    def test_free_sku_is_kept(self, db):
        assert keys.resolve_item_sku(db, "WIDGET-1") == "WIDGET-1"

    def test_requested_sku_is_stripped(self, db):
        assert keys.resolve_item_sku(db, "  WIDGET-1 ") == "WIDGET-1"

    def test_taken_sku_is_renamed(self, db, add_item):
        add_item("WIDGET-1")
        sku = keys.resolve_item_sku(db, "WIDGET-1")
        assert re.fullmatch(r"WIDGET-1-\d{4}", sku)

    def test_rename_gives_up_after_max_attempts(self, db, monkeypatch):
        monkeypatch.setattr(keys, "item_exists", lambda session, sku: True)
        monkeypatch.setattr(keys.time, "sleep", lambda seconds: None)
        with pytest.raises(ConflictError):
            keys.resolve_item_sku(db, "WIDGET-1", max_attempts=4)


def test_time_fragment_is_zero_padded():
    fragment = keys.time_fragment(4)
    assert len(fragment) == 4
    assert fragment.isdigit()
