import pytest
from tortoise import timezone
from tortoise.exceptions import DoesNotExist

from models.chat_message import ChatMessage
from services.chat_service import ChatService
from services.user_service import UserService


@pytest.fixture
def service():
    return ChatService()


async def test_new_session_is_waiting(service, customer):
    session = await service.create_session(customer.id, subject="Order #12", priority="high")

    assert session["status"] == "waiting"
    assert session["priority"] == "high"
    assert session["admin_id"] is None
    assert session["user"]["email"] == "alice@example.com"
    assert session["last_message"] is None


async def test_list_scoped_by_user(service, customer, other_customer, staff):
    mine = await service.create_session(customer.id)
    theirs = await service.create_session(other_customer.id)

    own = await service.list_sessions(viewer_id=customer.id, user_id=customer.id)
    everything = await service.list_sessions(viewer_id=staff.id)

    assert [s["id"] for s in own] == [mine["id"]]
    assert {s["id"] for s in everything} == {mine["id"], theirs["id"]}


async def test_messages_come_back_oldest_first(service, customer, staff):
    session = await service.create_session(customer.id)
    for text in ("one", "two", "three"):
        await service.send_message(session["id"], customer.id, text)
    await service.send_message(session["id"], staff.id, "four")

    messages = await service.get_messages(session["id"])

    assert [m["message"] for m in messages] == ["one", "two", "three", "four"]
    assert messages[-1]["sender"]["full_name"] == "Bob Support"


async def test_blank_message_is_rejected(service, customer):
    session = await service.create_session(customer.id)

    with pytest.raises(ValueError):
        await service.send_message(session["id"], customer.id, " \n ")
    assert await ChatMessage.all().count() == 0


async def test_attachment_needs_url(service, customer):
    session = await service.create_session(customer.id)

    with pytest.raises(ValueError):
        await service.send_message(session["id"], customer.id, "Shared file: a.pdf", message_type="file")


async def test_message_to_unknown_session(service, customer):
    with pytest.raises(DoesNotExist):
        await service.send_message(12345, customer.id, "anyone?")


async def test_mark_read_skips_own_messages_and_is_idempotent(service, customer, staff):
    session = await service.create_session(customer.id)
    await service.send_message(session["id"], customer.id, "help")
    await service.send_message(session["id"], staff.id, "on it")
    await service.send_message(session["id"], staff.id, "done")

    assert await service.mark_read(session["id"], customer.id) == 2
    first = {m["id"]: m["read_at"] for m in await service.get_messages(session["id"])}

    assert await service.mark_read(session["id"], customer.id) == 0
    second = {m["id"]: m["read_at"] for m in await service.get_messages(session["id"])}

    assert first == second
    own = [m for m in await service.get_messages(session["id"]) if m["sender_id"] == customer.id]
    assert own[0]["read_at"] is None


async def test_unread_count_and_last_message_follow_viewer(service, customer, staff):
    session = await service.create_session(customer.id)
    await service.send_message(session["id"], customer.id, "hello")
    await service.send_message(session["id"], staff.id, "hi, how can I help?")

    [for_customer] = await service.list_sessions(viewer_id=customer.id, user_id=customer.id)
    [for_staff] = await service.list_sessions(viewer_id=staff.id)

    assert for_customer["unread_count"] == 1
    assert for_staff["unread_count"] == 1
    assert for_customer["last_message"]["message"] == "hi, how can I help?"

    await service.mark_read(session["id"], customer.id)
    [for_customer] = await service.list_sessions(viewer_id=customer.id, user_id=customer.id)
    assert for_customer["unread_count"] == 0


async def test_assigned_session_cannot_be_waiting(service, customer, staff):
    session = await service.create_session(customer.id)

    with pytest.raises(ValueError):
        await service.update_session(session["id"], admin_id=staff.id)

    assigned = await service.update_session(session["id"], admin_id=staff.id, status="active")
    assert assigned["admin"]["full_name"] == "Bob Support"

    with pytest.raises(ValueError):
        await service.update_session(session["id"], status="waiting")


async def test_unknown_session_field_is_rejected(service, customer):
    session = await service.create_session(customer.id)

    with pytest.raises(ValueError):
        await service.update_session(session["id"], user_id=999)


async def test_closed_session_rejects_messages(service, customer):
    session = await service.create_session(customer.id)
    await service.update_session(session["id"], status="closed", closed_at=timezone.now())

    with pytest.raises(ValueError):
        await service.send_message(session["id"], customer.id, "still there?")

    assert await ChatMessage.filter(session_id=session["id"]).count() == 0


async def test_closed_session_cannot_be_assigned(service, customer, staff):
    session = await service.create_session(customer.id)
    await service.update_session(session["id"], status="closed", closed_at=timezone.now())

    with pytest.raises(ValueError):
        await service.update_session(session["id"], admin_id=staff.id, status="active")

    [unchanged] = await service.list_sessions(viewer_id=staff.id)
    assert unchanged["status"] == "closed"
    assert unchanged["admin_id"] is None


async def test_assigned_session_cannot_be_taken_over(service, customer, staff):
    manager = await UserService.get_or_create_user("dana@example.com", "Dana Lead", role_name="manager")
    session = await service.create_session(customer.id)
    await service.update_session(session["id"], admin_id=staff.id, status="active")

    with pytest.raises(ValueError):
        await service.update_session(session["id"], admin_id=manager.id, status="active")

    again = await service.update_session(session["id"], admin_id=staff.id, status="active")
    assert again["admin_id"] == staff.id


async def test_leaving_closed_clears_closed_at(service, customer):
    session = await service.create_session(customer.id)
    closed = await service.update_session(session["id"], status="closed", closed_at=timezone.now())
    assert closed["closed_at"] is not None

    reopened = await service.update_session(session["id"], status="waiting")

    assert reopened["status"] == "waiting"
    assert reopened["closed_at"] is None
