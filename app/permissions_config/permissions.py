from app.permissions_config.rules import Rule, is_authenticated, is_conversation_member

# Access rules per GraphQL "Type.field". Fields not listed are public.
FIELD_RULES: dict[str, Rule] = {
    "Query.me": is_authenticated,
    "Query.conversation": is_authenticated & is_conversation_member,
    "Mutation.sendMessage": is_authenticated & is_conversation_member,
    "Mutation.joinToConversation": is_authenticated,
    "Mutation.createConversation": is_authenticated,
    "Subscription.message": is_authenticated & is_conversation_member,
    "User.conversations": is_authenticated,
    "User.messages": is_authenticated,
    "Conversation.participants": is_authenticated,
    "Conversation.messages": is_authenticated,
}


def get_field_rule(field: str) -> Rule:
    """
    Returns the rule guarding a "Type.field" entry.
    """
    if field not in FIELD_RULES:
        raise ValueError(f"No access rule for field: {field}")
    return FIELD_RULES[field]
