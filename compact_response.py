"""
Compact response formatter for Basecamp Classic MCP tools.

Filters full Basecamp Classic API responses down to essential fields for AI
agents, keeping context window usage small.

Usage:
    from compact_response import compact_list

    todos = client.todos().all(project_id, todolist_id)
    if compact:
        todos = compact_list(todos, "todo")
"""

from typing import Any, Dict, List, Optional


# Fields to keep for each resource type in compact mode
COMPACT_FIELDS = {
    "project":        ["id", "name", "description", "archived", "app_url"],
    "todolist":       ["id", "name", "completed", "remaining_count", "completed_count", "app_url"],
    "todo":           ["id", "content", "completed", "due_at", "app_url"],
    "person":         ["id", "name", "email_address", "admin"],
    "message":        ["id", "subject", "created_at", "app_url"],
    "comment":        ["id", "created_at"],
    "document":       ["id", "title", "updated_at", "app_url"],
    "attachment":     ["id", "name", "content_type", "byte_size", "created_at", "app_url"],
    "event":          ["id", "action", "created_at"],
    "calendar_event": ["id", "summary", "starts_at", "ends_at", "all_day"],
    "topic":          ["id", "title", "excerpt", "updated_at"],
    "group":          ["id", "name"],
}

# Resource types whose single assignee is reduced to a name
_ASSIGNEE_TYPES = {"todo"}

# Resource types that should include creator name
_CREATOR_TYPES = {"message", "comment", "document", "attachment"}

# Resource types that keep a truncated text field
_TEXT_FIELDS = {"comment": "content", "event": "summary"}

_CONTENT_MAX_LENGTH = 200


def _extract_assignee_name(item: Dict[str, Any]) -> Optional[str]:
    """Extract the assignee name; Classic todos have at most one assignee."""
    assignee = item.get("assignee")
    if isinstance(assignee, dict):
        return assignee.get("name")
    return None


def _extract_creator_name(item: Dict[str, Any]) -> Optional[str]:
    """Extract creator name from nested creator field."""
    creator = item.get("creator")
    if isinstance(creator, dict):
        return creator.get("name")
    return None


def compact_item(item: Dict[str, Any], resource_type: str) -> Dict[str, Any]:
    """Filter a single item to only compact fields.

    Args:
        item: Full API response item
        resource_type: Key into COMPACT_FIELDS (e.g. "todo", "message")

    Returns:
        Dict with only the essential fields
    """
    if not isinstance(item, dict):
        return item

    fields = COMPACT_FIELDS.get(resource_type, [])
    result = {}

    for field in fields:
        if field in item:
            result[field] = item[field]

    if resource_type in _ASSIGNEE_TYPES:
        name = _extract_assignee_name(item)
        if name:
            result["assignee_name"] = name

    if resource_type in _CREATOR_TYPES:
        name = _extract_creator_name(item)
        if name:
            result["creator_name"] = name

    text_field = _TEXT_FIELDS.get(resource_type)
    if text_field:
        text = item.get(text_field)
        if isinstance(text, str):
            if len(text) > _CONTENT_MAX_LENGTH:
                result[text_field] = text[:_CONTENT_MAX_LENGTH] + "..."
            else:
                result[text_field] = text

    return result


def compact_list(items: List[Any], resource_type: str) -> List[Dict[str, Any]]:
    """Filter a list of items to only compact fields.

    Args:
        items: List of full API response items
        resource_type: Key into COMPACT_FIELDS

    Returns:
        List of filtered items
    """
    if not isinstance(items, list):
        return items
    return [compact_item(item, resource_type) for item in items]
