"""
Tests for the chat GraphQL schema: gated fields, mutations and the message subscription.
"""

import asyncio

import pytest

from app.auth import verify_credential
from app.services.pubsub import conversation_topic
from utils.graphql_helpers import execute, next_result, open_subscription, wait_for_subscribers

ME = "query { me { id nickname } }"

SIGNIN = """
mutation Signin($nickname: String!) {
    signin(nickname: $nickname) { token user { id nickname } }
}
"""

JOIN = """
mutation Join($id: ID!) {
    joinToConversation(conversationId: $id) { id title }
}
"""

SEND = """
mutation Send($body: String!, $id: ID!) {
    sendMessage(body: $body, conversationId: $id) { id body author { nickname } }
}
"""

MESSAGES = """
subscription Messages($id: ID!) {
    message(conversationId: $id) { body author { nickname } conversation { id } }
}
"""


def _error_codes(result) -> list:
    return [(error.extensions or {}).get("code") for error in result.errors or []]


async def _close(subscription) -> None:
    if hasattr(subscription, "aclose"):
        await subscription.aclose()


# ============================================================================
# TestSchemaShape
# ============================================================================


class TestSchemaShape:
    def test_root_fields(self):
        from app.graphql.schema import schema

        assert {"me", "conversation"} <= set(schema._schema.query_type.fields)
        assert {"signin", "createConversation", "joinToConversation", "sendMessage"} <= set(
            schema._schema.mutation_type.fields
        )
        assert "message" in schema._schema.subscription_type.fields

    def test_conversation_id_argument_name(self):
        from app.graphql.schema import schema

        send = schema._schema.mutation_type.fields["sendMessage"]
        assert set(send.args) == {"body", "conversationId"}
        assert str(send.args["conversationId"].type) == "ID!"

    def test_message_author_ids_are_not_exposed(self):
        from app.graphql.schema import schema

        fields = schema._schema.get_type("Message").fields
        assert "authorId" not in fields
        assert {"id", "body", "createdAt", "author", "conversation"} <= set(fields)


# ============================================================================
# TestQueries
# ============================================================================


class TestQueries:
    @pytest.mark.asyncio
    async def test_me_anonymous_is_rejected(self, make_context):
        result = await execute(ME, make_context(None))

        assert result.data is None
        assert result.errors[0].message == "Not authorized"
        assert _error_codes(result) == ["AUTH_PERMISSION_DENIED"]

    @pytest.mark.asyncio
    async def test_me_returns_current_user(self, make_context, alice):
        result = await execute(ME, make_context(alice))

        assert result.errors is None
        assert result.data == {"me": {"id": str(alice.id), "nickname": "alice"}}

    @pytest.mark.asyncio
    async def test_nested_user_fields_are_gated(self, make_context, alice, conversation):
        query = "query { me { conversations { id title } messages { body } } }"

        result = await execute(query, make_context(alice))

        assert result.errors is None
        assert result.data["me"]["conversations"] == [{"id": str(conversation.id), "title": "general"}]
        assert result.data["me"]["messages"] == []

    @pytest.mark.asyncio
    async def test_conversation_member_sees_participants(self, make_context, alice, conversation):
        query = "query($id: ID!) { conversation(conversationId: $id) { title participants { nickname } } }"

        result = await execute(query, make_context(alice), {"id": str(conversation.id)})

        assert result.errors is None
        assert result.data["conversation"] == {"title": "general", "participants": [{"nickname": "alice"}]}

    @pytest.mark.asyncio
    async def test_conversation_outsider_is_rejected(self, make_context, bob, conversation):
        query = "query($id: ID!) { conversation(conversationId: $id) { title } }"

        result = await execute(query, make_context(bob), {"id": str(conversation.id)})

        assert result.data is None
        assert _error_codes(result) == ["AUTH_PERMISSION_DENIED"]


# ============================================================================
# TestMutations
# ============================================================================


class TestMutations:
    @pytest.mark.asyncio
    async def test_signin_creates_user(self, make_context, store):
        result = await execute(SIGNIN, make_context(None), {"nickname": "carol"})

        assert result.errors is None
        payload = result.data["signin"]
        assert payload["user"]["nickname"] == "carol"
        assert store.calls_to("create_user") == 1
        claims = verify_credential(payload["token"])
        assert str(claims.id) == payload["user"]["id"]
        assert claims.nickname == "carol"

    @pytest.mark.asyncio
    async def test_signin_finds_existing_user(self, make_context, store):
        first = await execute(SIGNIN, make_context(None), {"nickname": "carol"})
        second = await execute(SIGNIN, make_context(None), {"nickname": "carol"})

        assert first.data["signin"]["user"]["id"] == second.data["signin"]["user"]["id"]
        assert store.calls_to("create_user") == 1

    @pytest.mark.asyncio
    async def test_signin_blank_nickname(self, make_context, store):
        result = await execute(SIGNIN, make_context(None), {"nickname": "   "})

        assert _error_codes(result) == ["VALIDATION_FAILED"]
        assert store.calls_to("create_user") == 0

    @pytest.mark.asyncio
    async def test_create_conversation_adds_creator(self, make_context, store, alice):
        query = "mutation { createConversation(title: \"random\") { id title disabled } }"

        result = await execute(query, make_context(alice))

        assert result.errors is None
        conv_id = int(result.data["createConversation"]["id"])
        assert store.participants[conv_id] == {alice.id}

    @pytest.mark.asyncio
    async def test_create_conversation_requires_auth(self, make_context, store):
        query = "mutation { createConversation(title: \"random\") { id } }"

        result = await execute(query, make_context(None))

        assert _error_codes(result) == ["AUTH_PERMISSION_DENIED"]
        assert store.calls_to("create_conversation") == 0

    @pytest.mark.asyncio
    async def test_join_is_idempotent(self, make_context, store, bob, conversation):
        variables = {"id": str(conversation.id)}

        first = await execute(JOIN, make_context(bob), variables)
        second = await execute(JOIN, make_context(bob), variables)

        assert first.errors is None and second.errors is None
        assert second.data["joinToConversation"] == {"id": str(conversation.id), "title": "general"}
        participants = await store.get_conversation_participants(conversation.id)
        assert [u.nickname for u in participants].count("bob") == 1

    @pytest.mark.asyncio
    async def test_join_unknown_conversation(self, make_context, bob):
        result = await execute(JOIN, make_context(bob), {"id": "999"})

        assert result.data is None
        assert _error_codes(result) == ["RESOURCE_CONVERSATION_NOT_FOUND"]

    @pytest.mark.asyncio
    async def test_join_requires_auth(self, make_context, conversation):
        result = await execute(JOIN, make_context(None), {"id": str(conversation.id)})

        assert _error_codes(result) == ["AUTH_PERMISSION_DENIED"]

    @pytest.mark.asyncio
    async def test_send_message_as_member(self, make_context, store, alice, conversation):
        result = await execute(SEND, make_context(alice), {"body": "hi", "id": str(conversation.id)})

        assert result.errors is None
        assert result.data["sendMessage"]["body"] == "hi"
        assert result.data["sendMessage"]["author"] == {"nickname": "alice"}
        assert [m.body for m in store.messages] == ["hi"]

    @pytest.mark.asyncio
    async def test_send_message_as_outsider_writes_nothing(self, make_context, store, bob, conversation):
        result = await execute(SEND, make_context(bob), {"body": "hi", "id": str(conversation.id)})

        assert result.data is None
        assert result.errors[0].message == "Not authorized"
        assert store.messages == []
        assert store.calls_to("create_message") == 0

    @pytest.mark.asyncio
    async def test_send_after_join(self, make_context, store, bob, conversation):
        context = make_context(bob)
        await execute(JOIN, context, {"id": str(conversation.id)})

        result = await execute(SEND, context, {"body": "hello", "id": str(conversation.id)})

        assert result.errors is None
        assert store.messages[0].author_id == bob.id


# ============================================================================
# TestMessageSubscription
# ============================================================================


class TestMessageSubscription:
    @pytest.mark.asyncio
    async def test_member_receives_sent_message(self, make_context, bus, alice, conversation):
        variables = {"id": str(conversation.id)}
        subscription = await open_subscription(MESSAGES, make_context(alice), variables)
        pending = asyncio.create_task(next_result(subscription))
        await wait_for_subscribers(bus, conversation_topic(conversation.id))

        await execute(SEND, make_context(alice), {"body": "hi", "id": str(conversation.id)})
        result = await pending

        assert result.errors is None
        assert result.data["message"] == {
            "body": "hi",
            "author": {"nickname": "alice"},
            "conversation": {"id": str(conversation.id)},
        }
        await _close(subscription)
        assert bus.subscriber_count(conversation_topic(conversation.id)) == 0

    @pytest.mark.asyncio
    async def test_other_conversation_receives_nothing(self, make_context, store, bus, alice, conversation):
        other = store.add_conversation("other", participants=[alice])
        subscription = await open_subscription(MESSAGES, make_context(alice), {"id": str(other.id)})
        pending = asyncio.create_task(next_result(subscription, timeout=0.3))
        await wait_for_subscribers(bus, conversation_topic(other.id))

        await execute(SEND, make_context(alice), {"body": "hi", "id": str(conversation.id)})

        with pytest.raises(asyncio.TimeoutError):
            await pending
        await _close(subscription)

    @pytest.mark.asyncio
    async def test_anonymous_subscription_is_rejected(self, make_context, bus, conversation):
        subscription = await open_subscription(MESSAGES, make_context(None), {"id": str(conversation.id)})

        result = await next_result(subscription)

        assert result.errors
        assert result.errors[0].message == "Not authorized"
        assert bus.subscriber_count() == 0
        await _close(subscription)

    @pytest.mark.asyncio
    async def test_outsider_subscription_is_rejected(self, make_context, bus, bob, conversation):
        subscription = await open_subscription(MESSAGES, make_context(bob), {"id": str(conversation.id)})

        result = await next_result(subscription)

        assert result.errors
        assert bus.subscriber_count(conversation_topic(conversation.id)) == 0
        await _close(subscription)

    @pytest.mark.asyncio
    async def test_each_subscriber_gets_each_message(self, make_context, bus, alice, bob, conversation, store):
        store.participants[conversation.id].add(bob.id)
        variables = {"id": str(conversation.id)}
        subs = [
            await open_subscription(MESSAGES, make_context(alice), variables),
            await open_subscription(MESSAGES, make_context(bob), variables),
        ]
        pending = [asyncio.create_task(next_result(s)) for s in subs]
        await wait_for_subscribers(bus, conversation_topic(conversation.id), count=2)

        await execute(SEND, make_context(bob), {"body": "both", "id": str(conversation.id)})
        results = await asyncio.gather(*pending)

        assert [r.data["message"]["body"] for r in results] == ["both", "both"]
        for sub in subs:
            await _close(sub)


class TestChatScenario:
    @pytest.mark.asyncio
    async def test_signin_join_send_and_receive(self, make_context, store, bus):
        c1 = store.add_conversation("C1")
        outsider = store.add_user("bob")
        variables = {"id": str(c1.id)}

        signin = await execute(SIGNIN, make_context(None), {"nickname": "alice"})
        user_id = int(signin.data["signin"]["user"]["id"])
        assert signin.data["signin"]["token"]
        alice = await store.get_user(user_id=user_id)

        joined = await execute(JOIN, make_context(alice), variables)
        assert joined.errors is None
        assert alice.id in store.participants[c1.id]

        rejected = await execute(SEND, make_context(outsider), {"body": "sneaky", "id": str(c1.id)})
        assert rejected.data is None
        assert _error_codes(rejected) == ["AUTH_PERMISSION_DENIED"]

        subscription = await open_subscription(MESSAGES, make_context(alice), variables)
        pending = asyncio.create_task(next_result(subscription))
        await wait_for_subscribers(bus, conversation_topic(c1.id))
        await execute(SEND, make_context(alice), {"body": "hi", "id": str(c1.id)})

        received = await pending
        assert received.data["message"]["body"] == "hi"
        assert [m.body for m in store.messages] == ["hi"]
        await _close(subscription)
