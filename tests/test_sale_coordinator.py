"""
Sale lifecycle: create -> (update) -> void, and the reconciliation job that
finishes sales whose ledger write did not go through.
"""

import asyncio
from datetime import datetime, timedelta

import pytest

from app.core.errors import (
    AccessDenied,
    InsufficientStock,
    ProductNotFound,
    SaleNotCompleted,
    SaleSyncInProgress,
    StorageError,
)
from app.models.product import Product
from app.models.sale import InventorySync, PaymentMethod, PaymentStatus, Sale, SaleStatus
from app.models.stock_movement import MovementKind, ReferenceType
from app.schemas.business import BusinessCreate
from app.schemas.sale import SaleCreate, SaleFilters, SaleUpdate
from app.services import business_service, sale_coordinator, stock_engine
from app.services.stock_queries import get_movements_for_reference
from beanie import PydanticObjectId


def sale_request(product=None, quantity=4, unit_price=8.0, **extra):
    return SaleCreate(
        product_id=product.id if product else None,
        quantity=quantity,
        unit_price=unit_price,
        payment_method=PaymentMethod.CASH,
        **extra,
    )


async def stock_of(product):
    return (await Product.get(product.id)).stock


@pytest.fixture
def broken_engine(monkeypatch):
    """Makes every stock movement fail until the test calls monkeypatch.undo()."""
    async def fail(*args, **kwargs):
        raise StorageError("ledger unavailable")

    monkeypatch.setattr(stock_engine, "adjust_stock", fail)
    return monkeypatch


class TestCreateSale:

    async def test_sale_with_product_deducts_stock(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        assert sale.status == SaleStatus.COMPLETED
        assert sale.inventory_sync == InventorySync.SYNCED
        assert sale.total_amount == 32.0
        assert await stock_of(product) == 6

        movements = await get_movements_for_reference(sale.id)
        assert len(movements) == 1
        assert movements[0].kind == MovementKind.SALE
        assert movements[0].quantity == -4
        assert movements[0].reason == sale_coordinator.SALE_REASON
        assert movements[0].reference_type == ReferenceType.SALE

    async def test_final_amount_applies_discount_and_tax(self, business, owner):
        sale = await sale_coordinator.create_sale(
            business.id, owner.id, sale_request(quantity=3, unit_price=2.5, discount=1.0, tax=0.75)
        )

        assert sale.total_amount == 7.5
        assert sale.final_amount == 7.25

    async def test_sale_without_product_has_no_stock_impact(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request())

        assert sale.inventory_sync == InventorySync.NOT_APPLICABLE
        assert await get_movements_for_reference(sale.id) == []
        assert await stock_of(product) == 10

    async def test_insufficient_stock_creates_nothing(self, business, owner, product):
        with pytest.raises(InsufficientStock):
            await sale_coordinator.create_sale(business.id, owner.id, sale_request(product, quantity=11))

        assert await Sale.find_all().count() == 0
        assert await stock_of(product) == 10

    async def test_unknown_product(self, business, owner):
        request = SaleCreate(product_id=PydanticObjectId(), quantity=1, unit_price=1, payment_method="cash")

        with pytest.raises(ProductNotFound):
            await sale_coordinator.create_sale(business.id, owner.id, request)

        assert await Sale.find_all().count() == 0

    async def test_product_from_another_business(self, business, owner, product):
        other = await business_service.create_business(
            owner.id, BusinessCreate(name="Second Shop", business_type="retail")
        )

        with pytest.raises(AccessDenied):
            await sale_coordinator.create_sale(other.id, owner.id, sale_request(product))

        assert await stock_of(product) == 10

    async def test_ledger_failure_keeps_sale_pending(self, business, owner, product, broken_engine):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        assert sale.status == SaleStatus.COMPLETED
        assert sale.inventory_sync == InventorySync.PENDING
        stored = await Sale.get(sale.id)
        assert stored.inventory_sync == InventorySync.PENDING
        broken_engine.undo()
        assert await stock_of(product) == 10


class TestVoidSale:

    async def test_void_returns_stock(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        voided = await sale_coordinator.void_sale(sale, owner.id)

        assert voided.status == SaleStatus.VOIDED
        assert voided.voided_by == owner.id
        assert voided.voided_at is not None
        assert voided.inventory_sync == InventorySync.SYNCED
        assert await stock_of(product) == 10

        movements = await get_movements_for_reference(sale.id)
        assert [m.kind for m in movements] == [MovementKind.SALE, MovementKind.RETURN]
        assert movements[1].quantity == 4
        assert movements[1].reason == sale_coordinator.VOID_REASON

    async def test_double_void_is_rejected_without_extra_movement(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        voided = await sale_coordinator.void_sale(sale, owner.id)

        with pytest.raises(SaleNotCompleted):
            await sale_coordinator.void_sale(voided, owner.id)

        # A stale copy still says "completed"; the conditional update catches it
        with pytest.raises(SaleNotCompleted):
            await sale_coordinator.void_sale(sale, owner.id)

        assert len(await get_movements_for_reference(sale.id)) == 2
        assert await stock_of(product) == 10

    async def test_concurrent_voids_only_one_wins(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        results = await asyncio.gather(
            sale_coordinator.void_sale(sale, owner.id),
            sale_coordinator.void_sale(sale, owner.id),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Sale) for r in results) == 1
        assert sum(isinstance(r, SaleNotCompleted) for r in results) == 1
        assert len(await get_movements_for_reference(sale.id)) == 2
        assert await stock_of(product) == 10

    async def test_void_sale_without_product(self, business, owner):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request())

        voided = await sale_coordinator.void_sale(sale, owner.id)

        assert voided.status == SaleStatus.VOIDED
        assert voided.inventory_sync == InventorySync.NOT_APPLICABLE

    async def test_voiding_a_never_synced_sale_returns_nothing(
        self, business, owner, product, broken_engine
    ):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        broken_engine.undo()

        voided = await sale_coordinator.void_sale(sale, owner.id)

        assert voided.inventory_sync == InventorySync.SYNCED
        assert await get_movements_for_reference(sale.id) == []
        assert await stock_of(product) == 10

    async def test_failed_return_leaves_void_pending(self, business, owner, product, monkeypatch):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        async def fail(*args, **kwargs):
            raise StorageError("ledger unavailable")

        monkeypatch.setattr(stock_engine, "adjust_stock", fail)
        voided = await sale_coordinator.void_sale(sale, owner.id)
        monkeypatch.undo()

        assert voided.status == SaleStatus.VOIDED
        assert voided.inventory_sync == InventorySync.PENDING
        assert await stock_of(product) == 6


class TestUpdateSale:

    async def test_edits_metadata_only(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        updated = await sale_coordinator.update_sale(
            sale, SaleUpdate(notes="Paid later", payment_status=PaymentStatus.PENDING)
        )

        assert updated.notes == "Paid later"
        assert updated.payment_status == PaymentStatus.PENDING
        assert updated.quantity == 4
        assert await stock_of(product) == 6

    async def test_voided_sale_is_frozen(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        voided = await sale_coordinator.void_sale(sale, owner.id)

        with pytest.raises(SaleNotCompleted):
            await sale_coordinator.update_sale(voided, SaleUpdate(notes="too late"))

        with pytest.raises(SaleNotCompleted):
            await sale_coordinator.update_sale(sale, SaleUpdate(notes="stale copy"))


class TestReconcile:

    async def test_pending_sale_is_synced_exactly_once(self, business, owner, product, broken_engine):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        broken_engine.undo()

        report = await sale_coordinator.reconcile_pending(business.id)

        assert (report.examined, report.synced, report.still_pending) == (1, 1, 0)
        assert (await Sale.get(sale.id)).inventory_sync == InventorySync.SYNCED
        assert await stock_of(product) == 6

        again = await sale_coordinator.reconcile_pending(business.id)

        assert again.examined == 0
        assert len(await get_movements_for_reference(sale.id)) == 1
        assert await stock_of(product) == 6

    async def test_pending_void_gets_its_return(self, business, owner, product, monkeypatch):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        async def fail(*args, **kwargs):
            raise StorageError("ledger unavailable")

        monkeypatch.setattr(stock_engine, "adjust_stock", fail)
        await sale_coordinator.void_sale(sale, owner.id)
        monkeypatch.undo()

        report = await sale_coordinator.reconcile_pending()

        assert report.synced == 1
        assert await stock_of(product) == 10
        movements = await get_movements_for_reference(sale.id)
        assert [m.kind for m in movements] == [MovementKind.SALE, MovementKind.RETURN]
        assert movements[1].created_by == owner.id

    async def test_sale_already_in_ledger_is_not_applied_twice(self, business, owner, product):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        # Ledger write succeeded but the "synced" flag never landed
        await sale.set({Sale.inventory_sync: InventorySync.PENDING})

        report = await sale_coordinator.reconcile_pending(business.id)

        assert report.synced == 1
        assert len(await get_movements_for_reference(sale.id)) == 1
        assert await stock_of(product) == 6

    async def test_still_failing_sale_stays_pending(self, business, owner, product, broken_engine):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        report = await sale_coordinator.reconcile_pending(business.id)

        assert (report.examined, report.synced, report.still_pending) == (1, 0, 1)
        assert (await Sale.get(sale.id)).inventory_sync == InventorySync.PENDING

    async def test_scoped_to_business(self, business, owner, product, broken_engine):
        await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        broken_engine.undo()

        report = await sale_coordinator.reconcile_pending(PydanticObjectId())

        assert report.examined == 0
        assert await stock_of(product) == 10


class TestListSales:

    async def test_newest_first_with_filters(self, business, owner, product):
        first = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product, quantity=1))
        second = await sale_coordinator.create_sale(business.id, owner.id, sale_request(quantity=2))
        await sale_coordinator.void_sale(first, owner.id)

        everything = await sale_coordinator.list_sales(business.id, SaleFilters())
        voided = await sale_coordinator.list_sales(business.id, SaleFilters(status=SaleStatus.VOIDED))

        assert [s.id for s in everything] == [second.id, first.id]
        assert [s.id for s in voided] == [first.id]

    async def test_other_business_sales_are_hidden(self, business, owner):
        other = await business_service.create_business(
            owner.id, BusinessCreate(name="Second Shop", business_type="retail")
        )
        await sale_coordinator.create_sale(other.id, owner.id, sale_request())

        assert await sale_coordinator.list_sales(business.id, SaleFilters()) == []

    async def test_get_sale_checks_business(self, business, owner):
        other = await business_service.create_business(
            owner.id, BusinessCreate(name="Second Shop", business_type="retail")
        )
        sale = await sale_coordinator.create_sale(other.id, owner.id, sale_request())

        with pytest.raises(AccessDenied):
            await sale_coordinator.get_sale(sale.id, business.id)


def slow_down_ledger_reads(monkeypatch):
    """Ledger lookups yield to the event loop, so concurrent writers interleave."""
    real_has_movement = sale_coordinator.has_movement

    async def slow_has_movement(reference_id, kind):
        await asyncio.sleep(0.01)
        return await real_has_movement(reference_id, kind)

    monkeypatch.setattr(sale_coordinator, "has_movement", slow_has_movement)


@pytest.fixture
def slow_ledger_reads(monkeypatch):
    slow_down_ledger_reads(monkeypatch)
    return monkeypatch


class TestSyncClaims:
    """Only the writer holding a sale's claim may record its stock movement."""

    async def test_reconcile_during_create_records_one_sale_movement(
        self, business, owner, product, slow_ledger_reads
    ):
        sale, report = await asyncio.gather(
            sale_coordinator.create_sale(business.id, owner.id, sale_request(product)),
            sale_coordinator.reconcile_pending(business.id),
        )

        movements = await get_movements_for_reference(sale.id)
        assert [(m.kind, m.quantity) for m in movements] == [(MovementKind.SALE, -4)]
        assert await stock_of(product) == 6
        assert (await Sale.get(sale.id)).inventory_sync == InventorySync.SYNCED
        assert report.synced == 0

    async def test_reconcile_during_void_records_one_return(
        self, business, owner, product, slow_ledger_reads
    ):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))

        await asyncio.gather(
            sale_coordinator.void_sale(sale, owner.id),
            sale_coordinator.reconcile_pending(business.id),
        )

        movements = await get_movements_for_reference(sale.id)
        assert [m.kind for m in movements] == [MovementKind.SALE, MovementKind.RETURN]
        assert await stock_of(product) == 10

    async def test_parallel_reconcilers_apply_a_pending_sale_once(
        self, business, owner, product, broken_engine
    ):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        broken_engine.undo()
        slow_down_ledger_reads(broken_engine)

        first, second = await asyncio.gather(
            sale_coordinator.reconcile_pending(business.id),
            sale_coordinator.reconcile_pending(business.id),
        )

        assert first.synced + second.synced == 1
        assert len(await get_movements_for_reference(sale.id)) == 1
        assert await stock_of(product) == 6

    async def test_void_is_refused_while_a_claim_is_live(self, business, owner, product, broken_engine):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        broken_engine.undo()
        await sale.set({
            Sale.inventory_sync: InventorySync.SYNCING,
            Sale.sync_claimed_at: datetime.utcnow(),
        })

        with pytest.raises(SaleSyncInProgress):
            await sale_coordinator.void_sale(sale, owner.id)

        assert (await Sale.get(sale.id)).status == SaleStatus.COMPLETED

    async def test_live_claim_is_left_alone(self, business, owner, product, broken_engine):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        broken_engine.undo()
        await sale.set({
            Sale.inventory_sync: InventorySync.SYNCING,
            Sale.sync_claimed_at: datetime.utcnow(),
        })

        report = await sale_coordinator.reconcile_pending(business.id)

        assert report.examined == 0
        assert await stock_of(product) == 10

    async def test_abandoned_claim_is_taken_over(self, business, owner, product, broken_engine):
        sale = await sale_coordinator.create_sale(business.id, owner.id, sale_request(product))
        broken_engine.undo()
        await sale.set({
            Sale.inventory_sync: InventorySync.SYNCING,
            Sale.sync_claimed_at: datetime.utcnow() - timedelta(hours=1),
        })

        report = await sale_coordinator.reconcile_pending(business.id)

        assert report.synced == 1
        stored = await Sale.get(sale.id)
        assert stored.inventory_sync == InventorySync.SYNCED
        assert stored.sync_claimed_at is None
        assert await stock_of(product) == 6
