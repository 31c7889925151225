from decimal import Decimal

import pytest

from conftest import make_request, priced_request
from models import status as status_module
from models.events import ServiceOrderEventType as E
from models.page import PageRequest
from models.requests import ServiceOrderItemRequest, ServiceOrderResourceRequest, ServiceOrderStatusUpdateRequest
from models.status import ServiceOrderStatus as S
from utils.exceptions import InvalidDataError, NotFoundError


class TestCreateServiceOrder:
    @pytest.mark.asyncio
    async def test_priced_quote_advances_to_waiting_approval(self, use_cases, publisher, clock):
        order = await use_cases.create.execute(priced_request())

        assert order.id is not None
        assert order.total_price == Decimal("375")
        assert order.status is S.WAITING_APPROVAL
        assert order.created_at == clock.now
        assert [line.total_price for line in order.services] == [Decimal("150")]
        assert [line.total_price for line in order.resources] == [Decimal("225")]
        assert publisher.event_types(order.id) == [E.ORDER_CREATED, E.ORDER_WAITING_APPROVAL]

    @pytest.mark.asyncio
    async def test_event_timestamps_follow_the_clock(self, use_cases, publisher, clock):
        order = await use_cases.create.execute(priced_request())

        assert [event.timestamp for event in publisher.events] == [clock.now, clock.now]
        assert order.updated_at == clock.now

    @pytest.mark.asyncio
    async def test_created_event_carries_the_received_snapshot(self, use_cases, publisher):
        order = await use_cases.create.execute(priced_request())

        created, waiting = publisher.events
        assert created.order_id == order.id
        assert created.status == "RECEIVED"
        assert created.customer_id == 10 and created.vehicle_license_plate == "ABC1D23"
        assert waiting.status == "WAITING_APPROVAL"

    @pytest.mark.asyncio
    async def test_order_without_lines_stays_received(self, use_cases, publisher):
        order = await use_cases.create.execute(make_request())

        assert order.status is S.RECEIVED
        assert order.total_price == Decimal("0")
        assert order.services == [] and order.resources == []
        assert publisher.event_types() == [E.ORDER_CREATED]

    @pytest.mark.asyncio
    async def test_unpriced_lines_stay_received(self, use_cases, publisher):
        request = make_request(services=[ServiceOrderItemRequest(service_id=3, quantity=2)])

        order = await use_cases.create.execute(request)

        assert order.status is S.RECEIVED
        assert order.services[0].price == Decimal("0")
        assert order.total_price == Decimal("0")
        assert publisher.event_types() == [E.ORDER_CREATED]

    @pytest.mark.asyncio
    async def test_auto_advance_sets_no_milestones(self, use_cases):
        order = await use_cases.create.execute(priced_request())
        assert order.approved_at is None and order.finished_at is None and order.delivered_at is None

    @pytest.mark.asyncio
    async def test_missing_customer_is_rejected(self, use_cases, publisher):
        with pytest.raises(InvalidDataError, match="customerId"):
            await use_cases.create.execute(make_request(customer_id=None))
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_ids_are_distinct(self, use_cases):
        first = await use_cases.create.execute(make_request())
        second = await use_cases.create.execute(make_request())
        assert first.id != second.id


class TestUpdateServiceOrder:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [S.RECEIVED, S.IN_DIAGNOSIS])
    async def test_replaces_quote_in_open_statuses(self, use_cases, publisher, store, clock, status):
        stored = await store(status, customer_name="Old name", description="old")
        clock.advance(minutes=30)

        updated = await use_cases.update.execute(stored.id, priced_request().model_copy(
            update={"customer_name": None, "description": "Replace pads and discs"}))

        assert updated.status is status
        assert updated.total_price == Decimal("375")
        assert len(updated.services) == 1 and len(updated.resources) == 1
        assert updated.customer_name == "Old name"
        assert updated.description == "Replace pads and discs"
        assert updated.updated_at == clock.now
        assert updated.created_at == stored.created_at
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_description_is_replaced_even_when_absent(self, use_cases, store):
        stored = await store(description="old")
        updated = await use_cases.update.execute(stored.id, make_request(description=None))
        assert updated.description is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [S.WAITING_APPROVAL, S.IN_EXECUTION, S.FINISHED, S.DELIVERED, S.CANCELLED])
    async def test_rejected_outside_open_statuses(self, use_cases, store, status):
        stored = await store(status)
        with pytest.raises(InvalidDataError, match=f"Cannot update order in status: {status.value}"):
            await use_cases.update.execute(stored.id, priced_request())

    @pytest.mark.asyncio
    async def test_unknown_order(self, use_cases):
        with pytest.raises(NotFoundError, match="Service order not found with id: 99"):
            await use_cases.update.execute(99, priced_request())


class TestUpdateServiceOrderStatus:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("source,target,event", [
        (S.RECEIVED, "IN_DIAGNOSIS", None),
        (S.IN_DIAGNOSIS, "WAITING_APPROVAL", E.ORDER_WAITING_APPROVAL),
        (S.WAITING_APPROVAL, "IN_EXECUTION", E.ORDER_APPROVED),
        (S.IN_EXECUTION, "FINISHED", E.ORDER_FINISHED),
        (S.FINISHED, "DELIVERED", E.ORDER_DELIVERED),
        (S.RECEIVED, "CANCELLED", E.ORDER_CANCELLED),
    ])
    async def test_publishes_matching_event(self, use_cases, publisher, store, source, target, event):
        stored = await store(source)

        order = await use_cases.update_status.execute(stored.id, ServiceOrderStatusUpdateRequest(status=target))

        assert order.status is S.of(target)
        assert publisher.event_types() == ([event] if event else [])

    @pytest.mark.asyncio
    async def test_target_literal_is_normalized(self, use_cases, store):
        stored = await store(S.RECEIVED)
        order = await use_cases.update_status.execute(stored.id, ServiceOrderStatusUpdateRequest(status=" in_diagnosis "))
        assert order.status is S.IN_DIAGNOSIS

    @pytest.mark.asyncio
    async def test_milestones_follow_the_clock(self, use_cases, store, clock):
        stored = await store(S.WAITING_APPROVAL)
        approved_at = clock.advance(hours=1)
        await use_cases.update_status.execute(stored.id, ServiceOrderStatusUpdateRequest(status="IN_EXECUTION"))
        finished_at = clock.advance(hours=2)

        order = await use_cases.update_status.execute(stored.id, ServiceOrderStatusUpdateRequest(status="FINISHED"))

        assert order.approved_at == approved_at
        assert order.finished_at == finished_at
        assert order.updated_at == finished_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source,target", [
        (S.RECEIVED, "FINISHED"),
        (S.IN_EXECUTION, "CANCELLED"),
        (S.DELIVERED, "RECEIVED"),
        (S.CANCELLED, "IN_DIAGNOSIS"),
        (S.IN_DIAGNOSIS, "IN_DIAGNOSIS"),
    ])
    async def test_illegal_transitions_are_rejected(self, use_cases, publisher, store, gateway, source, target):
        stored = await store(source)

        with pytest.raises(InvalidDataError, match=f"Invalid status transition from {source.value} to {target}"):
            await use_cases.update_status.execute(stored.id, ServiceOrderStatusUpdateRequest(status=target))

        assert (await gateway.find_by_id(stored.id)).status is source
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_unknown_target_literal(self, use_cases, store):
        stored = await store()
        with pytest.raises(InvalidDataError):
            await use_cases.update_status.execute(stored.id, ServiceOrderStatusUpdateRequest(status="DONE"))

    @pytest.mark.asyncio
    async def test_unknown_order(self, use_cases):
        with pytest.raises(NotFoundError):
            await use_cases.update_status.execute(42, ServiceOrderStatusUpdateRequest(status="IN_DIAGNOSIS"))


class TestProcessApproval:
    @pytest.mark.asyncio
    async def test_approval_starts_execution(self, use_cases, publisher, store, clock):
        stored = await store(S.WAITING_APPROVAL)

        order = await use_cases.process_approval.execute(stored.id, True)

        assert order.status is S.IN_EXECUTION
        assert order.approved_at == clock.now
        assert publisher.event_types() == [E.ORDER_APPROVED]

    @pytest.mark.asyncio
    async def test_rejection_returns_to_diagnosis(self, use_cases, publisher, store):
        stored = await store(S.WAITING_APPROVAL)

        order = await use_cases.process_approval.execute(stored.id, False)

        assert order.status is S.IN_DIAGNOSIS
        assert order.approved_at is None
        assert publisher.event_types() == [E.ORDER_REJECTED]

    @pytest.mark.asyncio
    async def test_rejected_quote_can_be_revised_and_resubmitted(self, use_cases, publisher):
        created = await use_cases.create.execute(priced_request())
        await use_cases.process_approval.execute(created.id, False)

        revised = await use_cases.update.execute(created.id, make_request(services=[
            ServiceOrderItemRequest(service_id=1, quantity=1, price=Decimal("120"))]))
        resubmitted = await use_cases.update_status.execute(
            created.id, ServiceOrderStatusUpdateRequest(status="WAITING_APPROVAL"))

        assert revised.total_price == Decimal("120")
        assert resubmitted.status is S.WAITING_APPROVAL
        assert publisher.event_types() == [
            E.ORDER_CREATED, E.ORDER_WAITING_APPROVAL, E.ORDER_REJECTED, E.ORDER_WAITING_APPROVAL]

    @pytest.mark.asyncio
    async def test_decision_is_checked_against_the_transition_table(self, use_cases, publisher, store, monkeypatch):
        monkeypatch.setitem(status_module._TRANSITIONS, S.WAITING_APPROVAL, frozenset({S.CANCELLED}))
        stored = await store(S.WAITING_APPROVAL)

        with pytest.raises(InvalidDataError, match="Invalid status transition from WAITING_APPROVAL to IN_EXECUTION"):
            await use_cases.process_approval.execute(stored.id, True)
        with pytest.raises(InvalidDataError, match="Invalid status transition from WAITING_APPROVAL to IN_DIAGNOSIS"):
            await use_cases.process_approval.execute(stored.id, False)
        assert publisher.events == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [S.RECEIVED, S.IN_DIAGNOSIS, S.IN_EXECUTION, S.CANCELLED])
    async def test_requires_waiting_approval(self, use_cases, publisher, store, status):
        stored = await store(status)
        with pytest.raises(InvalidDataError, match=f"Current status: {status.value}"):
            await use_cases.process_approval.execute(stored.id, True)
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_unknown_order(self, use_cases):
        with pytest.raises(NotFoundError):
            await use_cases.process_approval.execute(7, True)


class TestCancelServiceOrder:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [S.RECEIVED, S.IN_DIAGNOSIS, S.WAITING_APPROVAL])
    async def test_cancels_before_execution(self, use_cases, publisher, store, gateway, status):
        stored = await store(status)

        order = await use_cases.cancel.execute(stored.id, "Customer gave up")

        assert order.status is S.CANCELLED
        assert (await gateway.find_by_id(stored.id)).status is S.CANCELLED
        assert publisher.event_types() == [E.ORDER_CANCELLED]
        assert publisher.events[0].reason == "Customer gave up"

    @pytest.mark.asyncio
    async def test_reason_is_optional(self, use_cases, publisher, store):
        stored = await store()
        await use_cases.cancel.execute(stored.id)
        assert publisher.events[0].reason is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [S.IN_EXECUTION, S.FINISHED, S.DELIVERED, S.CANCELLED])
    async def test_rejected_once_execution_started(self, use_cases, publisher, store, status):
        stored = await store(status)
        with pytest.raises(InvalidDataError, match=f"Cannot cancel order in status: {status.value}"):
            await use_cases.cancel.execute(stored.id, "too late")
        assert publisher.events == []

    @pytest.mark.asyncio
    async def test_unknown_order(self, use_cases):
        with pytest.raises(NotFoundError):
            await use_cases.cancel.execute(1234)


class TestFindServiceOrder:
    @pytest.mark.asyncio
    async def test_find_by_id(self, use_cases, store):
        stored = await store(S.IN_EXECUTION)
        assert await use_cases.find.find_by_id(stored.id) == stored

    @pytest.mark.asyncio
    async def test_find_by_id_unknown(self, use_cases):
        with pytest.raises(NotFoundError, match="Service order not found with id: 5"):
            await use_cases.find.find_by_id(5)

    @pytest.mark.asyncio
    async def test_find_all_pages(self, use_cases, store):
        for _ in range(5):
            await store()

        page = await use_cases.find.find_all(PageRequest(page=1, size=2))

        assert [o.id for o in page.content] == [3, 4]
        assert page.total_elements == 5
        assert page.total_pages == 3

    @pytest.mark.asyncio
    async def test_find_by_customer(self, use_cases, store):
        await store(customer_id=1)
        await store(customer_id=2)
        await store(customer_id=1)

        page = await use_cases.find.find_by_customer_id(1, PageRequest())

        assert [o.customer_id for o in page.content] == [1, 1]
        assert page.total_elements == 2

    @pytest.mark.asyncio
    async def test_find_by_status_literal(self, use_cases, store):
        await store(S.RECEIVED)
        finished = await store(S.FINISHED)

        page = await use_cases.find.find_by_status("finished", PageRequest())

        assert [o.id for o in page.content] == [finished.id]

    @pytest.mark.asyncio
    async def test_find_by_unknown_status(self, use_cases):
        with pytest.raises(InvalidDataError):
            await use_cases.find.find_by_status("PARKED", PageRequest())
