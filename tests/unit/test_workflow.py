"""Tests for the transactional service / spare part workflow."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.db import crud
from app.errors import (
    ConcurrentUpdateError, InsufficientStockError, InvalidTransitionError,
    NotFoundError, ValidationError,
)
from app.models import Base, Service, SparePartOrder
from app.services import workflow


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def tech(db):
    return await crud.create_technician(db, "Gavrilo", phone="+38267555111")


async def make_service(db, status="pending", technician_id=None, service_id=None):
    client = await crud.create_client(db, "Jelena", "+38269000000", email="jelena@example.com")
    appliance = await crud.create_appliance(db, client.id, "Refrigerator", manufacturer="Beko")
    service = Service(
        client_id=client.id, appliance_id=appliance.id, description="Fridge not cooling",
        status=status, technician_id=technician_id,
    )
    if service_id is not None:
        service.id = service_id
    db.add(service)
    await db.commit()
    return service


# ── request_spare_part ────────────────────────────────────────


async def test_request_part_parks_in_progress_service(db, tech):
    await make_service(db, status="in_progress", technician_id=tech.id, service_id=1001)

    change = await workflow.request_spare_part(db, 1001, "Compressor", quantity=1)

    assert change.order.service_id == 1001
    assert change.order.status == "pending"
    assert change.service.status == "waiting_parts"
    assert change.service_changed
    orders = await crud.list_orders_for_service(db, 1001)
    assert len(orders) == 1
    service = await crud.get_service(db, 1001)
    assert service.status == "waiting_parts"


async def test_second_request_keeps_service_parked(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    await workflow.request_spare_part(db, service.id, "Compressor")
    change = await workflow.request_spare_part(db, service.id, "Relay", urgency="high")

    assert change.service.status == "waiting_parts"
    assert not change.service_changed
    assert len(await crud.list_orders_for_service(db, service.id)) == 2


async def test_request_part_on_closed_service_rejected(db):
    service = await make_service(db, status="completed")
    service_id = service.id
    with pytest.raises(InvalidTransitionError):
        await workflow.request_spare_part(db, service_id, "Compressor")
    assert await crud.list_orders_for_service(db, service_id) == []


async def test_request_part_validates_details(db):
    service = await make_service(db, status="assigned")
    with pytest.raises(ValidationError):
        await workflow.request_spare_part(db, service.id, "  ")
    with pytest.raises(ValidationError):
        await workflow.request_spare_part(db, service.id, "Pump", quantity=0)
    with pytest.raises(ValidationError):
        await workflow.request_spare_part(db, service.id, "Pump", urgency="asap")


async def test_request_part_missing_service(db):
    with pytest.raises(NotFoundError):
        await workflow.request_spare_part(db, 424242, "Pump")


# ── receive and the service cascade ───────────────────────────


async def test_receive_only_open_order_returns_service_to_assigned(db, tech):
    service = await make_service(db, status="waiting_parts", technician_id=tech.id, service_id=1001)
    db.add(SparePartOrder(id=55, service_id=service.id, part_name="Compressor", status="pending"))
    await db.commit()

    change = await workflow.receive_order(db, 55, cost=150.00, supplier="X")

    assert change.order.status == "received"
    assert change.order.actual_cost == 150.00
    assert change.order.supplier_name == "X"
    assert change.order.received_at is not None
    assert change.service.status == "assigned"


async def test_receive_twice_is_idempotent(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Drain pump")

    first = await workflow.receive_order(db, req.order.id, cost=40.0)
    second = await workflow.receive_order(db, req.order.id)

    assert first.order_changed and first.service_changed
    assert not second.order_changed
    assert not second.service_changed
    assert second.order.status == "received"
    assert second.order.actual_cost == 40.0
    assert second.service.status == "assigned"

    log = await crud.list_activity(db, order_id=req.order.id)
    assert [e.action for e in log].count("received") == 1
    assert [e.action for e in log].count("stock_added") == 1
    service_moves = [e for e in await crud.list_activity(db, service_id=service.id) if e.action == "service_status"]
    assert [(e.from_status, e.to_status) for e in service_moves] == [
        ("waiting_parts", "assigned"),
        ("in_progress", "waiting_parts"),
    ]


async def test_service_waits_for_every_open_order(db, tech):
    service = await make_service(db, status="assigned", technician_id=tech.id)
    a = await workflow.request_spare_part(db, service.id, "Motor")
    b = await workflow.request_spare_part(db, service.id, "Belt")

    after_first = await workflow.receive_order(db, a.order.id)
    assert after_first.service.status == "waiting_parts"

    after_second = await workflow.receive_order(db, b.order.id)
    assert after_second.service.status == "assigned"


async def test_unassigned_service_returns_to_pending(db):
    service = await make_service(db, status="pending")
    req = await workflow.request_spare_part(db, service.id, "Door hinge")
    assert req.service.status == "waiting_parts"

    change = await workflow.receive_order(db, req.order.id)
    assert change.service.status == "pending"


async def test_negative_cost_rejected(db, tech):
    service = await make_service(db, status="assigned", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Fan")
    with pytest.raises(ValidationError):
        await workflow.receive_order(db, req.order.id, cost=-1)


# ── full inventory lifecycle ──────────────────────────────────


async def test_order_lifecycle_persists_metadata(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Control board", part_number="CB-9", quantity=2)
    order_id = req.order.id

    await workflow.receive_order(db, order_id, cost=89.5, supplier="ComPlus", location="Shelf B3")
    await workflow.allocate_order(db, order_id, service.id, tech.id)
    await workflow.dispatch_order(db, order_id, "sent with van 2")
    change = await workflow.install_order(db, order_id, "fitted and tested")

    db.expunge_all()
    order = await crud.get_spare_part_order(db, order_id)
    assert order.status == "installed"
    assert order.part_number == "CB-9"
    assert order.quantity == 2
    assert order.actual_cost == 89.5
    assert order.supplier_name == "ComPlus"
    assert order.warehouse_location == "Shelf B3"
    assert order.allocated_technician_id == tech.id
    assert order.dispatch_notes == "sent with van 2"
    assert order.installation_notes == "fitted and tested"
    assert order.installed_at is not None
    assert change.service.status == "assigned"

    actions = [e.action for e in await crud.list_activity(db, order_id=order_id)]
    assert actions == ["installed", "dispatched", "allocated", "stock_added", "received", "requested"]


async def test_allocate_rejects_other_service(db, tech):
    service = await make_service(db, status="assigned", technician_id=tech.id)
    other = await make_service(db, status="assigned", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Valve")
    await workflow.receive_order(db, req.order.id)

    with pytest.raises(ValidationError):
        await workflow.allocate_order(db, req.order.id, other.id, tech.id)


async def test_install_before_dispatch_rejected(db, tech):
    service = await make_service(db, status="assigned", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Valve")
    await workflow.receive_order(db, req.order.id)

    with pytest.raises(InvalidTransitionError):
        await workflow.install_order(db, req.order.id)


# ── update_spare_part_order ───────────────────────────────────


async def test_update_rejects_skipping_stages(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Compressor")
    order_id = req.order.id

    with pytest.raises(InvalidTransitionError):
        await workflow.update_spare_part_order(db, order_id, "installed")

    order = await crud.get_spare_part_order(db, order_id)
    await db.refresh(order)
    assert order.status == "pending"


async def test_update_can_skip_when_enforcement_off(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Compressor")

    change = await workflow.update_spare_part_order(
        db, req.order.id, "installed", enforce_transitions=False,
    )
    assert change.order.status == "installed"
    assert change.service.status == "assigned"


async def test_update_receives_with_metadata(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Heater")

    change = await workflow.update_spare_part_order(
        db, req.order.id, "received", actual_cost=12.3, supplier_name="Candy", admin_notes="box 4",
    )
    assert change.order.actual_cost == 12.3
    assert change.order.supplier_name == "Candy"
    assert change.order.admin_notes == "box 4"
    assert change.service.status == "assigned"


async def test_update_rejects_unknown_status(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Heater")
    with pytest.raises(ValidationError):
        await workflow.update_spare_part_order(db, req.order.id, "shipped")


async def test_cost_cannot_be_set_on_pending_order(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Heater")
    with pytest.raises(ValidationError):
        await workflow.update_spare_part_order(db, req.order.id, "pending", actual_cost=10)


# ── service lifecycle ─────────────────────────────────────────


async def test_assign_moves_pending_to_assigned(db, tech):
    service = await make_service(db, status="pending")
    service = await workflow.assign_technician(db, service.id, tech.id)
    assert service.technician_id == tech.id
    assert service.status == "assigned"


async def test_reassign_keeps_waiting_parts(db, tech):
    other = await crud.create_technician(db, "Nikola")
    service = await make_service(db, status="waiting_parts", technician_id=tech.id)
    service = await workflow.assign_technician(db, service.id, other.id)
    assert service.technician_id == other.id
    assert service.status == "waiting_parts"


async def test_assign_completed_service_rejected(db, tech):
    service = await make_service(db, status="assigned", technician_id=tech.id)
    await workflow.complete_service(db, service.id, "done")

    other = await crud.create_technician(db, "Nikola")
    with pytest.raises(InvalidTransitionError):
        await workflow.assign_technician(db, service.id, other.id)


async def test_assign_inactive_technician_rejected(db, tech):
    await crud.update_technician(db, tech, is_active=False)
    service = await make_service(db, status="pending")
    with pytest.raises(ValidationError):
        await workflow.assign_technician(db, service.id, tech.id)


async def test_complete_sets_date_and_notes(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    service = await workflow.complete_service(db, service.id, "replaced thermostat", cost=60.0)
    assert service.status == "completed"
    assert service.completed_date is not None
    assert service.technician_notes == "replaced thermostat"
    assert service.cost == 60.0


async def test_cannot_complete_while_waiting_for_parts(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    await workflow.request_spare_part(db, service.id, "Compressor")
    with pytest.raises(InvalidTransitionError):
        await workflow.complete_service(db, service.id)


async def test_start_requires_assignment(db, tech):
    service = await make_service(db, status="pending")
    service_id = service.id
    with pytest.raises(InvalidTransitionError):
        await workflow.start_service(db, service_id)

    await workflow.assign_technician(db, service_id, tech.id)
    service = await workflow.start_service(db, service_id)
    assert service.status == "in_progress"


async def test_cancel_is_terminal(db):
    service = await make_service(db, status="scheduled")
    service = await workflow.cancel_service(db, service.id, "client withdrew")
    assert service.status == "cancelled"
    with pytest.raises(InvalidTransitionError):
        await workflow.schedule_service(db, service.id, service.created_at)


async def test_create_service_checks_appliance_owner(db):
    a = await crud.create_client(db, "A", "1")
    b = await crud.create_client(db, "B", "2")
    appliance = await crud.create_appliance(db, b.id, "Oven")
    with pytest.raises(ValidationError):
        await workflow.create_service(db, a.id, appliance.id, "Door broken")

    service = await workflow.create_service(db, b.id, appliance.id, "Door broken")
    assert service.status == "pending"


async def test_return_from_waiting(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    await workflow.request_spare_part(db, service.id, "Compressor")

    service = await workflow.return_from_waiting(db, service.id, "in_progress", "used part from stock")
    assert service.status == "in_progress"
    assert "used part from stock" in service.technician_notes

    with pytest.raises(InvalidTransitionError):
        await workflow.return_from_waiting(db, service.id, "assigned")


async def test_return_from_waiting_needs_technician(db):
    service = await make_service(db, status="waiting_parts")
    service_id = service.id
    with pytest.raises(ValidationError):
        await workflow.return_from_waiting(db, service_id, "assigned")
    service = await workflow.return_from_waiting(db, service_id, "pending")
    assert service.status == "pending"


async def test_list_waiting_services_hides_installed_orders(db, tech):
    service = await make_service(db, status="assigned", technician_id=tech.id)
    await workflow.request_spare_part(db, service.id, "Motor")
    await make_service(db, status="assigned", technician_id=tech.id)

    parked = await workflow.list_waiting_services(db)
    assert len(parked) == 1
    parked_service, orders = parked[0]
    assert parked_service.id == service.id
    assert [o.part_name for o in orders] == ["Motor"]


# ── concurrency ───────────────────────────────────────────────


async def test_stale_write_raises_concurrent_update(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as setup:
        tech = await crud.create_technician(setup, "Ana")
        service = await make_service(setup, status="assigned", technician_id=tech.id)
        service_id = service.id

    async with factory() as first, factory() as second:
        stale = await crud.get_service(first, service_id)
        assert stale.version == 1
        await first.commit()

        await workflow.start_service(second, service_id)

        with pytest.raises(ConcurrentUpdateError):
            await workflow.cancel_service(first, service_id)

    await engine.dispose()


# ── single transaction ────────────────────────────────────────


async def test_failure_after_order_write_rolls_back_order_and_service(db, tech, monkeypatch):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Compressor")
    service_id, order_id = service.id, req.order.id

    real_add_activity = crud.add_activity

    def failing_add_activity(session, action, **kwargs):
        if action == "service_status":
            raise RuntimeError("activity log unavailable")
        return real_add_activity(session, action, **kwargs)

    monkeypatch.setattr(crud, "add_activity", failing_add_activity)
    with pytest.raises(RuntimeError):
        await workflow.receive_order(db, order_id, cost=150.0, supplier="X")
    monkeypatch.undo()

    db.expunge_all()
    order = await crud.get_spare_part_order(db, order_id)
    assert order.status == "pending"
    assert order.actual_cost is None
    assert order.received_at is None
    service = await crud.get_service(db, service_id)
    assert service.status == "waiting_parts"
    assert await crud.get_stock_for_order(db, order_id) is None
    assert [e.action for e in await crud.list_activity(db, order_id=order_id)] == ["requested"]


async def test_order_mutations_lock_order_then_service(db, tech, monkeypatch):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Pump")
    order_id = req.order.id
    loads = []

    real_get_order = crud.get_spare_part_order
    real_get_service = crud.get_service

    async def get_order(session, oid, for_update=False):
        loads.append(("order", for_update))
        return await real_get_order(session, oid, for_update=for_update)

    async def get_service(session, sid, for_update=False):
        loads.append(("service", for_update))
        return await real_get_service(session, sid, for_update=for_update)

    monkeypatch.setattr(crud, "get_spare_part_order", get_order)
    monkeypatch.setattr(crud, "get_service", get_service)

    await workflow.receive_order(db, order_id)
    await workflow.allocate_order(db, order_id, None, tech.id)
    await workflow.dispatch_order(db, order_id)
    await workflow.install_order(db, order_id)

    assert loads == [("order", True), ("service", True)] * 4


# ── manual release ────────────────────────────────────────────


async def test_manual_release_holds_while_sibling_orders_move(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    first = await workflow.request_spare_part(db, service.id, "Door seal")
    second = await workflow.request_spare_part(db, service.id, "Hinge")
    service_id, first_id, second_id = service.id, first.order.id, second.order.id

    received = await workflow.receive_order(db, first_id)
    assert received.service.status == "waiting_parts"

    service = await workflow.return_from_waiting(db, service_id, "in_progress", "seal fitted from van stock")
    assert service.status == "in_progress"

    change = await workflow.allocate_order(db, first_id, service_id, tech.id)
    assert change.service.status == "in_progress"
    assert not change.service_changed

    change = await workflow.receive_order(db, second_id)
    assert change.service.status == "in_progress"


async def test_released_service_parks_again_on_new_request_or_sent_back_order(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Belt")
    service_id, order_id = service.id, req.order.id
    await workflow.receive_order(db, order_id)
    await workflow.start_service(db, service_id)

    change = await workflow.update_spare_part_order(db, order_id, "pending", enforce_transitions=False)
    assert change.service.status == "waiting_parts"

    await workflow.return_from_waiting(db, service_id, "in_progress")
    change = await workflow.request_spare_part(db, service_id, "Pulley")
    assert change.service.status == "waiting_parts"


# ── warehouse stock ───────────────────────────────────────────


async def test_receive_puts_order_quantity_into_stock_once(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Heating element", part_number="HE-2", quantity=2)
    order_id = req.order.id

    first = await workflow.receive_order(db, order_id, cost=35.0, supplier="Gorenje", location="Shelf C1")
    assert first.stock.quantity == 2
    assert first.stock.part_number == "HE-2"
    assert first.stock.unit_cost == 35.0
    assert first.stock.location == "Shelf C1"
    assert first.stock.source_order_id == order_id

    second = await workflow.receive_order(db, order_id, location="Shelf C2")
    assert second.stock.id == first.stock.id
    assert second.stock.quantity == 2
    assert second.stock.location == "Shelf C2"
    assert len(await crud.list_available_parts(db)) == 1


async def test_admin_update_to_received_stocks_the_part(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Thermostat", quantity=3)

    change = await workflow.update_spare_part_order(db, req.order.id, "received", actual_cost=8.0)
    assert change.stock.quantity == 3
    assert change.stock.unit_cost == 8.0


async def test_allocate_takes_order_quantity_from_stock(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Brushes", quantity=2)
    order_id = req.order.id
    await workflow.receive_order(db, order_id)

    change = await workflow.allocate_order(db, order_id, service.id, tech.id)
    assert change.stock.quantity == 0

    again = await workflow.allocate_order(db, order_id, service.id, tech.id)
    assert not again.order_changed
    assert again.stock.quantity == 0

    allocations = await crud.list_part_allocations(db, service_id=service.id)
    assert [(a.order_id, a.technician_id, a.allocated_quantity) for a in allocations] == [(order_id, tech.id, 2)]


async def test_allocate_without_enough_stock_rejected(db, tech):
    service = await make_service(db, status="in_progress", technician_id=tech.id)
    req = await workflow.request_spare_part(db, service.id, "Brushes", quantity=2)
    order_id = req.order.id
    received = await workflow.receive_order(db, order_id)
    part_id = received.stock.id
    await workflow.adjust_stock(db, part_id, -1, "one damaged in transit")

    with pytest.raises(InsufficientStockError):
        await workflow.allocate_order(db, order_id, None, tech.id)

    db.expunge_all()
    order = await crud.get_spare_part_order(db, order_id)
    assert order.status == "received"
    part = await crud.get_available_part(db, part_id)
    assert part.quantity == 1


async def test_allocate_stock_hands_out_partial_quantity(db, tech):
    part = await workflow.add_stock(db, "Door filter", 5, location="Shelf A1", unit_cost=4.5)
    part_id = part.id

    allocation, part = await workflow.allocate_stock(db, part_id, tech.id, 3, notes="for van 1")
    assert allocation.allocated_quantity == 3
    assert allocation.service_id is None
    assert part.quantity == 2

    with pytest.raises(InsufficientStockError):
        await workflow.allocate_stock(db, part_id, tech.id, 3)
    with pytest.raises(ValidationError):
        await workflow.allocate_stock(db, part_id, tech.id, 0)
    with pytest.raises(NotFoundError):
        await workflow.allocate_stock(db, 4242, tech.id, 1)

    part = await crud.get_available_part(db, part_id)
    await db.refresh(part)
    assert part.quantity == 2


async def test_allocate_stock_for_closed_service_rejected(db, tech):
    service = await make_service(db, status="cancelled")
    part = await workflow.add_stock(db, "Door filter", 1)
    with pytest.raises(ValidationError):
        await workflow.allocate_stock(db, part.id, tech.id, 1, service_id=service.id)


async def test_adjust_stock_never_goes_negative(db):
    part = await workflow.add_stock(db, "Fuse", 2)
    part_id = part.id

    part = await workflow.adjust_stock(db, part_id, 4)
    assert part.quantity == 6

    with pytest.raises(ValidationError):
        await workflow.adjust_stock(db, part_id, -7)

    actions = [e.action for e in await crud.list_activity(db)]
    assert actions == ["stock_adjusted", "stock_added"]
