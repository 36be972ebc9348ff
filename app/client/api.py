"""HTTP client for the TaskFlow API."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from .session import AuthSession, SessionContext

logger = logging.getLogger("taskflow.client")

AUTH_REJECTED = (401, 403)


class ApiError(Exception):
    """The server answered with an error status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
        if detail is not None:
            return str(detail)
    return response.reason_phrase


class TaskflowClient:
    """Talks to the API on behalf of the user held in ``session``.

    Any 401/403 from the server tears the local session down. Network errors
    (``httpx.RequestError``) propagate unchanged.
    """

    def __init__(
        self,
        session: SessionContext,
        base_url: str = "http://localhost:5000",
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.session = session
        self.http = http or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        self.http.close()

    def _headers(self, skip_auth: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if not skip_auth and self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        skip_auth: bool = False,
    ) -> Any:
        response = self.http.request(method, path, json=json, headers=self._headers(skip_auth))
        if response.status_code in AUTH_REJECTED and not skip_auth:
            logger.info("Server rejected the session; signing out locally")
            self.session.clear()
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))
        return response.json()

    # Authentication

    def sign_in(self, email: str, password: str, remember: bool = False) -> Dict[str, Any]:
        data = self.request(
            "POST", "/login", json={"email": email, "password": password}, skip_auth=True
        )
        self.session.set(data["token"], data["user"], remember=remember)
        return data["user"]

    def sign_up(self, name: str, email: str, password: str) -> Dict[str, Any]:
        data = self.request(
            "POST",
            "/register",
            json={"name": name, "email": email, "password": password},
            skip_auth=True,
        )
        self.session.set(data["token"], data["user"], remember=True)
        return data["user"]

    def sign_out(self) -> None:
        self.session.clear()

    def validate_session(self) -> bool:
        """Ask the server whether the stored token is still good.

        Returns False (and clears the session) only on an explicit rejection.
        """
        if not self.session.token:
            return False
        try:
            self.request("GET", "/validate-token")
        except ApiError as exc:
            if exc.status_code in AUTH_REJECTED:
                return False
            raise
        return True

    def restore_session(self) -> Optional[AuthSession]:
        """Restore the persisted session right away, then confirm it.

        If the server cannot be reached, or fails for reasons other than
        rejecting the token, the restored session is kept.
        """
        restored = self.session.restore()
        if restored is None:
            return None
        try:
            self.validate_session()
        except httpx.RequestError as exc:
            logger.warning("Unable to validate token with server, keeping user logged in: %s", exc)
        except ApiError as exc:
            logger.warning("Token validation failed with %s, keeping user logged in", exc.status_code)
        return self.session.get()

    # Tasks

    def add_task(self, title: str, **fields: Any) -> Dict[str, Any]:
        return self.request("POST", "/addTask", json={"title": title, **fields})

    def all_tasks(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/tasks")

    def active_tasks(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/active-tasks")

    def completed_tasks(self) -> List[Dict[str, Any]]:
        return self.request("GET", "/completed-tasks")

    def get_task(self, task_id: str) -> Dict[str, Any]:
        return self.request("GET", f"/task/{task_id}")

    def update_task(self, task_id: str, **fields: Any) -> Dict[str, Any]:
        return self.request("PUT", f"/updateTask/{task_id}", json=fields)

    def toggle_task(self, task_id: str) -> Dict[str, Any]:
        return self.request("PATCH", f"/toggleTask/{task_id}")

    def delete_task(self, task_id: str) -> Dict[str, Any]:
        return self.request("DELETE", f"/deleteTask/{task_id}")

    def notification_stats(self) -> Dict[str, Any]:
        return self.request("GET", "/notification-stats")

    def trigger_reminders(self) -> Dict[str, Any]:
        return self.request("POST", "/trigger-reminders")


class TaskList:
    """Locally displayed task list with optimistic deletes."""

    def __init__(self, client: TaskflowClient):
        self.client = client
        self.tasks: List[Dict[str, Any]] = []
        self.completed_tasks: List[Dict[str, Any]] = []

    def load_active(self) -> List[Dict[str, Any]]:
        self.tasks = self.client.active_tasks()
        return self.tasks

    def load_completed(self) -> List[Dict[str, Any]]:
        self.completed_tasks = self.client.completed_tasks()
        return self.completed_tasks

    def delete_optimistic(self, task_id: str) -> None:
        """Drop the task from both lists before the server confirms; put the
        original lists back if the call fails."""
        active, completed = list(self.tasks), list(self.completed_tasks)
        self.tasks = [task for task in active if task["id"] != task_id]
        self.completed_tasks = [task for task in completed if task["id"] != task_id]
        try:
            self.client.delete_task(task_id)
        except (ApiError, httpx.RequestError):
            self.tasks = active
            self.completed_tasks = completed
            raise
