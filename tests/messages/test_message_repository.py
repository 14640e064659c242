from __future__ import annotations

import asyncio

from codeforge.memory.store import InMemoryStateStore
from codeforge.messages import (
    Fragment,
    Message,
    MessageRole,
    MessageType,
    StoreMessageRepository,
)


def run_async(coro):
    return asyncio.run(coro)


async def _seed(repo: StoreMessageRepository, conversation_id: str, contents: list[str]) -> None:
    for idx, content in enumerate(contents):
        await repo.create_message(
            conversation_id=conversation_id,
            content=content,
            role=MessageRole.USER if idx % 2 == 0 else MessageRole.ASSISTANT,
            type=MessageType.RESULT,
        )


def test_list_recent_messages_orders_and_limits():
    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            await _seed(repo, "c1", ["t1", "t2", "t3", "t4", "t5", "t6", "t7"])
            await _seed(repo, "c2", ["other"])
            desc = await repo.list_recent_messages("c1", 5)
            asc = await repo.list_recent_messages("c1", 3, order="asc")
            none = await repo.list_recent_messages("c1", 0)
            return desc, asc, none

    desc, asc, none = run_async(scenario())
    assert [m.content for m in desc] == ["t7", "t6", "t5", "t4", "t3"]
    assert [m.content for m in asc] == ["t5", "t6", "t7"]
    assert none == []


def test_create_message_with_known_id_is_idempotent():
    async def scenario():
        async with InMemoryStateStore() as store:
            repo = StoreMessageRepository(store)
            first = await repo.create_message(
                conversation_id="c1",
                content="done",
                role=MessageRole.ASSISTANT,
                type=MessageType.RESULT,
                fragment=Fragment(sandbox_url="https://x", title="T", files={"a": "1"}),
                message_id="msg_run-1",
            )
            second = await repo.create_message(
                conversation_id="c1",
                content="something else",
                role=MessageRole.ASSISTANT,
                type=MessageType.ERROR,
                message_id="msg_run-1",
            )
            return first, second, await repo.list_messages("c1")

    first, second, stored = run_async(scenario())
    assert second == first
    assert len(stored) == 1
    assert stored[0].type == MessageType.RESULT
    assert stored[0].fragment == Fragment(sandbox_url="https://x", title="T", files={"a": "1"})


def test_message_json_keeps_fragment_and_enums():
    msg = Message(
        id="m1",
        conversation_id="c1",
        content="hello",
        role=MessageRole.ASSISTANT,
        type=MessageType.ERROR,
        created_at=123,
        seq=4,
    )
    data = msg.to_json()
    assert data["role"] == "ASSISTANT"
    assert data["type"] == "ERROR"
    assert data["fragment"] is None
    assert Message.from_json(data) == msg
