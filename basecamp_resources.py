"""
Resource endpoints of the Basecamp Classic API.

Each class maps method names to a URL template and an HTTP verb, and
delegates to the client's get/post/put/delete. Ids are integers.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

if TYPE_CHECKING:
    from basecamp_client import BasecampClient


class AbstractResource:
    """Base class holding the back-reference to the client."""

    def __init__(self, client: "BasecampClient"):
        self.client = client


class ProjectsResource(AbstractResource):
    """Projects: /projects.json"""

    def all(self) -> List[Dict[str, Any]]:
        """Get all active projects."""
        return self.client.get('/projects.json')

    def archived(self) -> List[Dict[str, Any]]:
        """Get all archived projects."""
        return self.client.get('/projects/archived.json')

    def get(self, project_id: int) -> Dict[str, Any]:
        return self.client.get('/projects/%d.json' % project_id)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a project. ``data`` needs at least a ``name``."""
        return self.client.post('/projects.json', data)

    def update(self, project_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/projects/%d.json' % project_id, data)

    def delete(self, project_id: int) -> None:
        self.client.delete('/projects/%d.json' % project_id)

    def activate(self, project_id: int) -> Dict[str, Any]:
        """Unarchive a project."""
        return self.client.put('/projects/%d.json' % project_id, {'archived': False})

    def archive(self, project_id: int) -> Dict[str, Any]:
        return self.client.put('/projects/%d.json' % project_id, {'archived': True})


class TodolistsResource(AbstractResource):
    """Todolists, account-wide and per project."""

    def all_global(self) -> List[Dict[str, Any]]:
        """Get active todolists across all projects."""
        return self.client.get('/todolists.json')

    def completed_global(self) -> List[Dict[str, Any]]:
        return self.client.get('/todolists/completed.json')

    def trashed_global(self) -> List[Dict[str, Any]]:
        return self.client.get('/todolists/trashed.json')

    def assigned(self) -> List[Dict[str, Any]]:
        """Get todolists with todos assigned to the current user."""
        return self.client.get('/todolists/assigned.json')

    def all(self, project_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/todolists.json' % project_id)

    def completed(self, project_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/todolists/completed.json' % project_id)

    def trashed(self, project_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/todolists/trashed.json' % project_id)

    def get(self, project_id: int, todolist_id: int, exclude_todos: bool = False) -> Dict[str, Any]:
        """
        Get a single todolist.

        Args:
            project_id (int): Project ID
            todolist_id (int): Todolist ID
            exclude_todos (bool, optional): Leave the todos out of the response
        """
        params = {}
        if exclude_todos:
            params['exclude_todos'] = 'true'
        return self.client.get('/projects/%d/todolists/%d.json' % (project_id, todolist_id), params)

    def create(self, project_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post('/projects/%d/todolists.json' % project_id, data)

    def update(self, project_id: int, todolist_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/projects/%d/todolists/%d.json' % (project_id, todolist_id), data)

    def delete(self, project_id: int, todolist_id: int) -> None:
        self.client.delete('/projects/%d/todolists/%d.json' % (project_id, todolist_id))


class TodosResource(AbstractResource):
    """Todos, inside a todolist or across a project."""

    def all(self, project_id: int, todolist_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/todolists/%d/todos.json' % (project_id, todolist_id))

    def all_in_project(self, project_id: int, due_since: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get all todos in a project.

        Args:
            project_id (int): Project ID
            due_since (str, optional): Only todos due on or after this date (YYYY-MM-DD)
        """
        params = {}
        if due_since is not None:
            params['due_since'] = due_since
        return self.client.get('/projects/%d/todos.json' % project_id, params)

    def completed_in_project(self, project_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/todos/completed.json' % project_id)

    def remaining_in_project(self, project_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/todos/remaining.json' % project_id)

    def trashed_in_project(self, project_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/todos/trashed.json' % project_id)

    def get(self, project_id: int, todo_id: int) -> Dict[str, Any]:
        return self.client.get('/projects/%d/todos/%d.json' % (project_id, todo_id))

    def create(self, project_id: int, todolist_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a todo. ``data`` needs ``content``; ``due_at`` and ``assignee`` are optional."""
        return self.client.post('/projects/%d/todolists/%d/todos.json' % (project_id, todolist_id), data)

    def update(self, project_id: int, todo_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/projects/%d/todos/%d.json' % (project_id, todo_id), data)

    def delete(self, project_id: int, todo_id: int) -> None:
        self.client.delete('/projects/%d/todos/%d.json' % (project_id, todo_id))

    def complete(self, project_id: int, todo_id: int) -> Dict[str, Any]:
        return self.update(project_id, todo_id, {'completed': True})

    def uncomplete(self, project_id: int, todo_id: int) -> Dict[str, Any]:
        return self.update(project_id, todo_id, {'completed': False})


class PeopleResource(AbstractResource):
    """People and project accesses."""

    def all(self) -> List[Dict[str, Any]]:
        return self.client.get('/people.json')

    def trashed(self) -> List[Dict[str, Any]]:
        return self.client.get('/people/trashed.json')

    def in_project(self, project_id: int) -> List[Dict[str, Any]]:
        """Get the people with access to a project."""
        return self.client.get('/projects/%d/accesses.json' % project_id)

    def get(self, person_id: int) -> Dict[str, Any]:
        return self.client.get('/people/%d.json' % person_id)

    def me(self) -> Dict[str, Any]:
        """Get the person the credentials belong to."""
        return self.client.get('/people/me.json')

    def assigned_todos(self, person_id: int, due_since: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get todolists containing todos assigned to a person.

        Args:
            person_id (int): Person ID
            due_since (str, optional): Only todos due on or after this date (YYYY-MM-DD)

        Returns:
            list: Todolists, each with an ``assigned_todos`` list
        """
        params = {}
        if due_since is not None:
            params['due_since'] = due_since
        return self.client.get('/people/%d/assigned_todos.json' % person_id, params)

    def events(self, person_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/people/%d/events.json' % person_id)

    def projects(self, person_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/people/%d/projects.json' % person_id)

    def grant_access(self, project_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Grant access; ``data`` holds ``ids`` and/or ``email_addresses``."""
        return self.client.post('/projects/%d/accesses.json' % project_id, data)

    def revoke_access(self, project_id: int, person_id: int) -> None:
        self.client.delete('/projects/%d/accesses/%d.json' % (project_id, person_id))

    def update_access(self, project_id: int, person_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/projects/%d/accesses/%d.json' % (project_id, person_id), data)


class MessagesResource(AbstractResource):

    def get(self, project_id: int, message_id: int) -> Dict[str, Any]:
        return self.client.get('/projects/%d/messages/%d.json' % (project_id, message_id))

    def create(self, project_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Post a message. ``data`` holds ``subject`` and ``content``."""
        return self.client.post('/projects/%d/messages.json' % project_id, data)

    def update(self, project_id: int, message_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/projects/%d/messages/%d.json' % (project_id, message_id), data)

    def delete(self, project_id: int, message_id: int) -> None:
        self.client.delete('/projects/%d/messages/%d.json' % (project_id, message_id))


class CommentsResource(AbstractResource):

    def create(self, project_id: int, section: str, resource_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Comment on a resource.

        Args:
            project_id (int): Project ID
            section (str): Commentable collection, e.g. 'messages', 'todos', 'documents'
            resource_id (int): ID of the commented resource
            data (dict): Comment payload with ``content``
        """
        return self.client.post(
            '/projects/%d/%s/%d/comments.json' % (project_id, section, resource_id),
            data,
        )

    def delete(self, project_id: int, comment_id: int) -> None:
        self.client.delete('/projects/%d/comments/%d.json' % (project_id, comment_id))


class DocumentsResource(AbstractResource):

    def all(self, project_id: int, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/documents.json' % project_id, query)

    def all_global(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/documents.json', query)

    def get(self, project_id: int, document_id: int) -> Dict[str, Any]:
        return self.client.get('/projects/%d/documents/%d.json' % (project_id, document_id))

    def create(self, project_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post('/projects/%d/documents.json' % project_id, data)

    def update(self, project_id: int, document_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/projects/%d/documents/%d.json' % (project_id, document_id), data)

    def delete(self, project_id: int, document_id: int) -> None:
        self.client.delete('/projects/%d/documents/%d.json' % (project_id, document_id))


class UploadsResource(AbstractResource):
    """Attachments. Uploading returns a token to reference from a message, comment or upload."""

    def all(self, project_id: int, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/attachments.json' % project_id, query)

    def all_global(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/attachments.json', query)

    def get(self, project_id: int, attachment_id: int) -> Dict[str, Any]:
        return self.client.get('/projects/%d/attachments/%d.json' % (project_id, attachment_id))

    def create(self, file_content: Union[bytes, str], content_type: str) -> Dict[str, Any]:
        """
        Upload raw file content.

        Args:
            file_content (bytes or str): File data, sent verbatim
            content_type (str): MIME type of the file

        Returns:
            dict: Contains the ``token`` used to attach the file
        """
        if isinstance(file_content, str):
            file_content = file_content.encode('utf-8')
        return self.client.post('/attachments.json', file_content, {
            'Content-Type': content_type,
            'Content-Length': str(len(file_content)),
        })

    def update(self, project_id: int, attachment_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/projects/%d/attachments/%d.json' % (project_id, attachment_id), data)

    def delete(self, project_id: int, attachment_id: int) -> None:
        self.client.delete('/projects/%d/attachments/%d.json' % (project_id, attachment_id))


class EventsResource(AbstractResource):
    """Activity events. Queries accept ``since`` (ISO-8601) and ``page``."""

    def all(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/events.json', query)

    def all_in_project(self, project_id: int, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/events.json' % project_id, query)

    def all_by_person(self, person_id: int, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/people/%d/events.json' % person_id, query)


class CalendarEventsResource(AbstractResource):

    def all(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/calendar_events.json', query)

    def all_in_calendar(self, calendar_id: int, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/calendars/%d/calendar_events.json' % calendar_id, query)

    def all_in_project(self, project_id: int, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/calendar_events.json' % project_id, query)

    def past(self, calendar_id: int) -> List[Dict[str, Any]]:
        return self.client.get('/calendars/%d/calendar_events/past.json' % calendar_id)

    def get(self, calendar_id: int, event_id: int) -> Dict[str, Any]:
        return self.client.get('/calendars/%d/calendar_events/%d.json' % (calendar_id, event_id))

    def create(self, calendar_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post('/calendars/%d/calendar_events.json' % calendar_id, data)

    def update(self, calendar_id: int, event_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put('/calendars/%d/calendar_events/%d.json' % (calendar_id, event_id), data)

    def delete(self, calendar_id: int, event_id: int) -> None:
        self.client.delete('/calendars/%d/calendar_events/%d.json' % (calendar_id, event_id))


class TopicsResource(AbstractResource):

    def all_in_project(self, project_id: int, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self.client.get('/projects/%d/topics.json' % project_id, query)


class GroupsResource(AbstractResource):

    def all(self) -> List[Dict[str, Any]]:
        return self.client.get('/groups.json')

    def get(self, group_id: int) -> Dict[str, Any]:
        return self.client.get('/groups/%d.json' % group_id)
