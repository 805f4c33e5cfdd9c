#!/usr/bin/env python3
"""
FastMCP server for Basecamp Classic integration.

Exposes the Basecamp Classic client as MCP tools over stdio. Credentials come
from the environment or a .env file next to this script (see
BasecampClient.from_env).
"""

import logging
import os
import sys
import threading
from typing import Any, Dict, Optional

import anyio
from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from basecamp_client import BasecampClient
from basecamp_exceptions import AuthenticationError, BasecampApiError, RequestError
from compact_response import compact_item, compact_list

# Determine project root (directory containing this script)
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
DOTENV_PATH = os.path.join(PROJECT_ROOT, '.env')
load_dotenv(DOTENV_PATH)

LOG_FILE_PATH = os.path.join(PROJECT_ROOT, 'basecamp_fastmcp.log')
logger = logging.getLogger('basecamp_fastmcp')

mcp = FastMCP("basecamp-classic")


def _configure_logging():
    """Log to a file AND stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE_PATH),
            logging.StreamHandler(sys.stderr)
        ]
    )


CLIENT_ENV_VARS = (
    'BASECAMP_ACCOUNT_ID', 'BASECAMP_AUTH_MODE', 'BASECAMP_USERNAME', 'BASECAMP_PASSWORD',
    'BASECAMP_ACCESS_TOKEN', 'BASECAMP_TOKEN_EXPIRES_AT', 'USER_AGENT',
    'BASECAMP_CONNECT_TIMEOUT', 'BASECAMP_READ_TIMEOUT',
)

# One client (and one connection pool) per distinct configuration
_client_cache: Dict[str, Any] = {"config": None, "client": None}
_client_lock = threading.Lock()


def _client_config():
    return tuple(os.getenv(name) for name in CLIENT_ENV_VARS)


def _get_basecamp_client() -> Optional[BasecampClient]:
    """Return the shared client, or None when credentials are missing.

    The client is rebuilt only when the relevant environment variables change,
    e.g. after BASECAMP_ACCESS_TOKEN is updated with a refreshed token.
    """
    with _client_lock:
        if _client_cache["client"] is not None and _client_cache["config"] == _client_config():
            return _client_cache["client"]

        try:
            client = BasecampClient.from_env()
        except ValueError as e:
            logger.error(f"Error creating Basecamp client: {e}")
            return None

        if _client_cache["client"] is not None:
            _client_cache["client"].close()
        # from_env may have loaded more variables from .env
        _client_cache["config"] = _client_config()
        _client_cache["client"] = client
    logger.debug(f"Created Basecamp client for account {client.account_id}")
    return client


def _get_auth_error_response(client: Optional[BasecampClient] = None) -> Dict[str, Any]:
    """Return consistent auth error response."""
    if client is not None and not client.authentication.is_valid():
        return {
            "error": "OAuth token expired",
            "message": "Your Basecamp access token has expired. Refresh it and update BASECAMP_ACCESS_TOKEN."
        }
    return {
        "error": "Authentication required",
        "message": "Set BASECAMP_ACCOUNT_ID and either BASECAMP_ACCESS_TOKEN or "
                   "BASECAMP_USERNAME/BASECAMP_PASSWORD in the environment or .env file."
    }


def _error_response(e: Exception, action: str) -> Dict[str, Any]:
    logger.error(f"Error {action}: {e}")
    if isinstance(e, AuthenticationError):
        return {
            "error": "Authentication failed",
            "message": f"Basecamp rejected the credentials while {action}: {e}"
        }
    if isinstance(e, RequestError):
        return {
            "error": "Request failed",
            "status_code": e.status_code,
            "message": str(e)
        }
    return {
        "error": "Execution error",
        "message": str(e)
    }


async def _run_sync(func, *args, **kwargs):
    """Wrapper to run synchronous functions in thread pool."""
    return await anyio.to_thread.run_sync(lambda: func(*args, **kwargs))


async def _call(action: str, func, *args, **kwargs):
    """Run a client call for a tool.

    Returns (result, None) on success or (None, error_response) on failure.
    """
    try:
        return await _run_sync(func, *args, **kwargs), None
    except (BasecampApiError, ValueError) as e:
        return None, _error_response(e, action)


def _client_or_error():
    client = _get_basecamp_client()
    if client is None:
        return None, _get_auth_error_response()
    if not client.authentication.is_valid():
        return None, _get_auth_error_response(client)
    return client, None


@mcp.tool()
async def get_projects(archived: bool = False, compact: bool = False) -> Dict[str, Any]:
    """Get all Basecamp projects.

    Args:
        archived: If True, return archived projects instead of active ones
        compact: If True, return only essential fields (id, name, description, url)
    """
    client, error = _client_or_error()
    if error:
        return error

    resource = client.projects()
    projects, error = await _call("getting projects", resource.archived if archived else resource.all)
    if error:
        return error
    if compact:
        projects = compact_list(projects, "project")
    return {
        "status": "success",
        "projects": projects,
        "count": len(projects)
    }


@mcp.tool()
async def get_project(project_id: str) -> Dict[str, Any]:
    """Get details for a specific project.

    Args:
        project_id: The project ID
    """
    client, error = _client_or_error()
    if error:
        return error

    project, error = await _call(f"getting project {project_id}",
                                 lambda: client.projects().get(int(project_id)))
    if error:
        return error
    return {
        "status": "success",
        "project": project
    }


@mcp.tool()
async def get_todolists(project_id: Optional[str] = None, completed: bool = False,
                        compact: bool = False) -> Dict[str, Any]:
    """Get todo lists, for one project or across the account.

    Args:
        project_id: The project ID; omit for all projects
        completed: If True, return completed lists instead of active ones
        compact: If True, return only essential fields
    """
    client, error = _client_or_error()
    if error:
        return error

    def fetch():
        todolists = client.todolists()
        if project_id is None:
            return todolists.completed_global() if completed else todolists.all_global()
        pid = int(project_id)
        return todolists.completed(pid) if completed else todolists.all(pid)

    todolists, error = await _call("getting todolists", fetch)
    if error:
        return error
    if compact:
        todolists = compact_list(todolists, "todolist")
    return {
        "status": "success",
        "todolists": todolists,
        "count": len(todolists)
    }


@mcp.tool()
async def get_todos(project_id: str, todolist_id: Optional[str] = None, status: str = "all",
                    due_since: Optional[str] = None, compact: bool = False) -> Dict[str, Any]:
    """Get todos from a todo list, or from a whole project.

    Args:
        project_id: Project ID
        todolist_id: The todo list ID; omit to list todos across the project
        status: For project-wide listing: 'all', 'completed', 'remaining' or 'trashed'
        due_since: For project-wide 'all' listing: only todos due on/after YYYY-MM-DD
        compact: If True, return only essential fields
    """
    client, error = _client_or_error()
    if error:
        return error

    def fetch():
        todos = client.todos()
        pid = int(project_id)
        if todolist_id is not None:
            return todos.all(pid, int(todolist_id))
        if status == "all":
            return todos.all_in_project(pid, due_since)
        if status == "completed":
            return todos.completed_in_project(pid)
        if status == "remaining":
            return todos.remaining_in_project(pid)
        if status == "trashed":
            return todos.trashed_in_project(pid)
        raise ValueError(f"Invalid status '{status}'. Must be 'all', 'completed', 'remaining' or 'trashed'")

    todos, error = await _call("getting todos", fetch)
    if error:
        return error
    if compact:
        todos = compact_list(todos, "todo")
    return {
        "status": "success",
        "todos": todos,
        "count": len(todos)
    }


@mcp.tool()
async def get_todo(project_id: str, todo_id: str) -> Dict[str, Any]:
    """Get a single todo item.

    Args:
        project_id: Project ID
        todo_id: The todo ID
    """
    client, error = _client_or_error()
    if error:
        return error

    todo, error = await _call(f"getting todo {todo_id}",
                              lambda: client.todos().get(int(project_id), int(todo_id)))
    if error:
        return error
    return {
        "status": "success",
        "todo": todo
    }


@mcp.tool()
async def create_todo(project_id: str, todolist_id: str, content: str,
                      due_at: Optional[str] = None, assignee_id: Optional[str] = None) -> Dict[str, Any]:
    """Create a new todo item in a todo list.

    Args:
        project_id: Project ID
        todolist_id: The todo list ID
        content: The todo item's text (required)
        due_at: Due date in YYYY-MM-DD format
        assignee_id: ID of the person to assign
    """
    client, error = _client_or_error()
    if error:
        return error

    def create():
        data = {"content": content}
        if due_at:
            data["due_at"] = due_at
        if assignee_id:
            data["assignee"] = {"id": int(assignee_id), "type": "Person"}
        return client.todos().create(int(project_id), int(todolist_id), data)

    todo, error = await _call("creating todo", create)
    if error:
        return error
    return {
        "status": "success",
        "todo": todo,
        "message": f"Todo '{content}' created successfully"
    }


@mcp.tool()
async def complete_todo(project_id: str, todo_id: str) -> Dict[str, Any]:
    """Mark a todo item as complete.

    Args:
        project_id: Project ID
        todo_id: The todo ID
    """
    client, error = _client_or_error()
    if error:
        return error

    todo, error = await _call("completing todo",
                              lambda: client.todos().complete(int(project_id), int(todo_id)))
    if error:
        return error
    return {
        "status": "success",
        "todo": todo,
        "message": "Todo marked as complete"
    }


@mcp.tool()
async def uncomplete_todo(project_id: str, todo_id: str) -> Dict[str, Any]:
    """Mark a todo item as incomplete.

    Args:
        project_id: Project ID
        todo_id: The todo ID
    """
    client, error = _client_or_error()
    if error:
        return error

    todo, error = await _call("uncompleting todo",
                              lambda: client.todos().uncomplete(int(project_id), int(todo_id)))
    if error:
        return error
    return {
        "status": "success",
        "todo": todo,
        "message": "Todo marked as incomplete"
    }


@mcp.tool()
async def delete_todo(project_id: str, todo_id: str) -> Dict[str, Any]:
    """Delete a todo item.

    Args:
        project_id: Project ID
        todo_id: The todo ID
    """
    client, error = _client_or_error()
    if error:
        return error

    _, error = await _call("deleting todo",
                           lambda: client.todos().delete(int(project_id), int(todo_id)))
    if error:
        return error
    return {
        "status": "success",
        "message": "Todo deleted successfully"
    }


@mcp.tool()
async def get_people(project_id: Optional[str] = None, compact: bool = False) -> Dict[str, Any]:
    """Get people in the account, or the people with access to a project.

    Args:
        project_id: Project ID; omit for everyone in the account
        compact: If True, return only essential fields
    """
    client, error = _client_or_error()
    if error:
        return error

    def fetch():
        if project_id is None:
            return client.people().all()
        return client.people().in_project(int(project_id))

    people, error = await _call("getting people", fetch)
    if error:
        return error
    if compact:
        people = compact_list(people, "person")
    return {
        "status": "success",
        "people": people,
        "count": len(people)
    }


@mcp.tool()
async def get_me() -> Dict[str, Any]:
    """Get the person the configured credentials belong to."""
    client, error = _client_or_error()
    if error:
        return error

    person, error = await _call("getting current person", client.people().me)
    if error:
        return error
    return {
        "status": "success",
        "person": person
    }


@mcp.tool()
async def get_assigned_todos(person_id: Optional[str] = None, due_since: Optional[str] = None,
                             compact: bool = False) -> Dict[str, Any]:
    """Get todos assigned to a person, grouped by todo list.

    Args:
        person_id: Person ID; omit for the current user
        due_since: Only todos due on or after this date (YYYY-MM-DD)
        compact: If True, return only essential fields of each todo
    """
    client, error = _client_or_error()
    if error:
        return error

    def fetch():
        people = client.people()
        pid = int(person_id) if person_id is not None else people.me()["id"]
        return people.assigned_todos(pid, due_since)

    todolists, error = await _call("getting assigned todos", fetch)
    if error:
        return error
    if compact:
        todolists = [
            dict(compact_item(todolist, "todolist"),
                 assigned_todos=compact_list(todolist.get("assigned_todos", []), "todo"))
            for todolist in todolists
        ]
    return {
        "status": "success",
        "todolists": todolists,
        "count": sum(len(todolist.get("assigned_todos", [])) for todolist in todolists)
    }


@mcp.tool()
async def get_message(project_id: str, message_id: str) -> Dict[str, Any]:
    """Get a message and its comments.

    Args:
        project_id: Project ID
        message_id: The message ID
    """
    client, error = _client_or_error()
    if error:
        return error

    message, error = await _call("getting message",
                                 lambda: client.messages().get(int(project_id), int(message_id)))
    if error:
        return error
    return {
        "status": "success",
        "message": message
    }


@mcp.tool()
async def create_comment(project_id: str, section: str, resource_id: str, content: str) -> Dict[str, Any]:
    """Comment on a message, todo, document or other commentable item.

    Args:
        project_id: Project ID
        section: Kind of item, e.g. 'messages', 'todos', 'documents', 'uploads'
        resource_id: ID of the item to comment on
        content: The comment text
    """
    client, error = _client_or_error()
    if error:
        return error

    comment, error = await _call(
        "creating comment",
        lambda: client.comments().create(int(project_id), section, int(resource_id), {"content": content}),
    )
    if error:
        return error
    return {
        "status": "success",
        "comment": comment,
        "message": "Comment created successfully"
    }


@mcp.tool()
async def get_documents(project_id: Optional[str] = None, compact: bool = False) -> Dict[str, Any]:
    """Get text documents, for one project or across the account.

    Args:
        project_id: Project ID; omit for all projects
        compact: If True, return only essential fields
    """
    client, error = _client_or_error()
    if error:
        return error

    def fetch():
        if project_id is None:
            return client.documents().all_global()
        return client.documents().all(int(project_id))

    documents, error = await _call("getting documents", fetch)
    if error:
        return error
    if compact:
        documents = compact_list(documents, "document")
    return {
        "status": "success",
        "documents": documents,
        "count": len(documents)
    }


@mcp.tool()
async def get_events(since: str, project_id: Optional[str] = None, page: int = 1,
                     compact: bool = False) -> Dict[str, Any]:
    """Get recent activity events.

    Args:
        since: ISO-8601 timestamp; only events after it are returned
        project_id: Project ID; omit for the whole account
        page: Page number (50 events per page)
        compact: If True, return only essential fields
    """
    client, error = _client_or_error()
    if error:
        return error

    query = {"since": since, "page": page}

    def fetch():
        if project_id is None:
            return client.events().all(query)
        return client.events().all_in_project(int(project_id), query)

    events, error = await _call("getting events", fetch)
    if error:
        return error
    if compact:
        events = compact_list(events, "event")
    return {
        "status": "success",
        "events": events,
        "count": len(events),
        "page": page
    }


@mcp.tool()
async def get_topics(project_id: str, page: int = 1, compact: bool = False) -> Dict[str, Any]:
    """Get the discussion topics of a project.

    Args:
        project_id: Project ID
        page: Page number
        compact: If True, return only essential fields
    """
    client, error = _client_or_error()
    if error:
        return error

    topics, error = await _call("getting topics",
                                lambda: client.topics().all_in_project(int(project_id), {"page": page}))
    if error:
        return error
    if compact:
        topics = compact_list(topics, "topic")
    return {
        "status": "success",
        "topics": topics,
        "count": len(topics)
    }


def main():
    _configure_logging()
    logger.info("Starting Basecamp Classic FastMCP server")
    # Run using official MCP stdio transport
    mcp.run(transport='stdio')


if __name__ == "__main__":
    main()
