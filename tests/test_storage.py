import asyncio

import pytest

from conftest import OTHER_SHOP, SHOP


def _insert(storage, title="Summer Pack", bundle_type="SIMPLE", product_id="101", shop=SHOP):
    return asyncio.run(
        storage.insert_bundle(
            {"shop": shop, "title": title, "type": bundle_type, "product_id": product_id}
        )
    )


def test_insert_bundle_assigns_id_status_and_timestamps(storage):
    bundle = _insert(storage)

    assert bundle.id
    assert bundle.status == "ACTIVE"
    assert bundle.shop == SHOP
    assert bundle.created_at is not None
    assert bundle.updated_at is not None


def test_insert_bundle_normalizes_shop_domain(storage):
    bundle = _insert(storage, shop="https://Alpha.myshopify.com/")
    assert bundle.shop == SHOP


def test_insert_bundle_requires_shop(storage):
    with pytest.raises(ValueError):
        _insert(storage, shop="  ")


def test_list_bundles_is_scoped_to_shop(storage):
    mine = _insert(storage, title="Mine")
    _insert(storage, title="Theirs", shop=OTHER_SHOP)

    bundles = asyncio.run(storage.list_bundles(SHOP))

    assert [b.id for b in bundles] == [mine.id]


def test_list_bundles_newest_first(storage):
    first = _insert(storage, title="First")
    second = _insert(storage, title="Second")

    bundles = asyncio.run(storage.list_bundles(SHOP))

    assert [b.id for b in bundles] == [second.id, first.id]


def test_get_bundle_hides_other_shops_rows(storage):
    bundle = _insert(storage)

    assert asyncio.run(storage.get_bundle(bundle.id, SHOP)).title == "Summer Pack"
    assert asyncio.run(storage.get_bundle(bundle.id, OTHER_SHOP)) is None
    assert asyncio.run(storage.get_bundle("does-not-exist", SHOP)) is None


def test_title_with_quotes_is_stored_verbatim(storage):
    title = "Bob's \"Best\" Bundle'); DROP TABLE bundles;--"
    bundle = _insert(storage, title=title)

    loaded = asyncio.run(storage.get_bundle(bundle.id, SHOP))

    assert loaded.title == title
    assert len(asyncio.run(storage.list_bundles(SHOP))) == 1


def test_count_items_and_grouped_counts(storage):
    full = _insert(storage, title="Full")
    empty = _insert(storage, title="Empty")
    asyncio.run(storage.add_items(full.id, ["201", "202", "203"]))

    assert asyncio.run(storage.count_items(full.id)) == 3
    assert asyncio.run(storage.count_items(empty.id)) == 0
    assert asyncio.run(storage.count_items_by_bundle([full.id, empty.id])) == {
        full.id: 3,
        empty.id: 0,
    }
    assert asyncio.run(storage.count_items_by_bundle([])) == {}


def test_list_items_returns_bundle_items(storage):
    bundle = _insert(storage)
    asyncio.run(storage.add_items(bundle.id, ["201", "202"]))

    items = asyncio.run(storage.list_items(bundle.id))

    assert sorted(i.product_id for i in items) == ["201", "202"]
    assert all(i.bundle_id == bundle.id for i in items)


def test_update_bundle_changes_only_title_and_status(storage):
    bundle = _insert(storage, product_id="101")

    updated = asyncio.run(
        storage.update_bundle(
            bundle.id,
            SHOP,
            {"status": "DRAFT", "title": None, "type": "INFINITE_OPTIONS", "product_id": "999"},
        )
    )

    assert updated.status == "DRAFT"
    assert updated.title == "Summer Pack"
    assert updated.type == "SIMPLE"
    assert updated.product_id == "101"


def test_update_bundle_foreign_or_missing_returns_none(storage):
    bundle = _insert(storage)

    assert asyncio.run(storage.update_bundle(bundle.id, OTHER_SHOP, {"title": "Hijack"})) is None
    assert asyncio.run(storage.update_bundle("missing", SHOP, {"title": "Nope"})) is None
    assert asyncio.run(storage.get_bundle(bundle.id, SHOP)).title == "Summer Pack"


def test_record_and_list_reconciliations(storage):
    asyncio.run(storage.record_reconciliation(SHOP, "555", "Orphan", "productDelete failed"))

    records = asyncio.run(storage.list_reconciliations(SHOP))

    assert len(records) == 1
    assert records[0].product_id == "555"
    assert records[0].title == "Orphan"
    assert asyncio.run(storage.list_reconciliations(OTHER_SHOP)) == []
