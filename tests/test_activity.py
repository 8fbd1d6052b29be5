"""Tests for activity log queries and paginated search."""

from wms import activity, audit
from wms.schemas import ActionType


def _log_many(db, count, action_type=ActionType.INFO, description="Entry"):
    for index in range(count):
        audit.log_activity(db, action_type, f"{description} {index}", commit=False)
    db.commit()


class TestSearchAndPaginate:
    def test_exactly_one_full_page_has_no_more(self, db):
        _log_many(db, 20)
        rows, has_more = activity.search_and_paginate(db, page=1, page_size=20)
        assert len(rows) == 20
        assert has_more is False

    def test_one_extra_entry_has_more(self, db):
        _log_many(db, 21)
        rows, has_more = activity.search_and_paginate(db, page=1, page_size=20)
        assert len(rows) == 20
        assert has_more is True

        rows, has_more = activity.search_and_paginate(db, page=2, page_size=20)
        assert len(rows) == 1
        assert has_more is False

    def test_page_past_the_end_is_empty(self, db):
        _log_many(db, 3)
        rows, has_more = activity.search_and_paginate(db, page=5, page_size=10)
        assert rows == []
        assert has_more is False

    def test_type_filter_ignores_case(self, db):
        _log_many(db, 2, ActionType.ADD)
        _log_many(db, 3, ActionType.REMOVE)
        rows, _ = activity.search_and_paginate(db, type_filter="remove")
        assert len(rows) == 3
        assert {row.action_type for row in rows} == {"Remove"}

    def test_search_matches_description_sku_and_user(self, db, add_worker):
        worker = add_worker("mlopez")
        audit.log_activity(db, ActionType.ADD, "Added pallet jack")
        audit.log_activity(db, ActionType.ADD, "Added item", item_sku="JACK-42")
        audit.log_activity(db, ActionType.UPDATE, "Updated item", user_id=str(worker.id))
        audit.log_activity(db, ActionType.UPDATE, "Unrelated")

        assert len(activity.search_and_paginate(db, search_text="JACK")[0]) == 2
        assert len(activity.search_and_paginate(db, search_text="MLOPEZ")[0]) == 1

    def test_search_wildcards_are_literal(self, db):
        audit.log_activity(db, ActionType.INFO, "Discount 50% applied")
        audit.log_activity(db, ActionType.INFO, "No discount")
        rows, _ = activity.search_and_paginate(db, search_text="%")
        assert [row.description for row in rows] == ["Discount 50% applied"]

    def test_results_are_newest_first(self, db):
        _log_many(db, 3)
        rows, _ = activity.search_and_paginate(db)
        assert [row.description for row in rows] == ["Entry 2", "Entry 1", "Entry 0"]


class TestActivityQueries:
    def test_recent_limits_and_orders(self, db):
        _log_many(db, 8)
        rows = activity.get_recent(db)
        assert len(rows) == 5
        assert rows[0].description == "Entry 7"

    def test_by_type_ignores_case(self, db):
        _log_many(db, 2, ActionType.MOVE)
        _log_many(db, 1, ActionType.ADD)
        assert len(activity.get_by_type(db, "MOVE")) == 2

    def test_by_item(self, db):
        audit.log_activity(db, ActionType.ADD, "Added", item_sku="A-1")
        audit.log_activity(db, ActionType.UPDATE, "Updated", item_sku="A-1")
        audit.log_activity(db, ActionType.ADD, "Added", item_sku="B-2")
        rows = activity.get_by_item(db, "A-1")
        assert [row.action_type for row in rows] == ["Update", "Add"]

    def test_by_user(self, db, add_worker):
        worker = add_worker("mlopez")
        audit.log_activity(db, ActionType.ADD, "Added", user_id=str(worker.id))
        audit.log_activity(db, ActionType.ADD, "Added")
        rows = activity.get_by_user(db, str(worker.id), count=3)
        assert len(rows) == 1
        assert rows[0].user_name == "mlopez"
