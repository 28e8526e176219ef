"""HTTP client for the Entipedia API, used by the board and cache layer."""

from typing import Any, Callable, Optional

import httpx


class ApiError(Exception):
    """Non-2xx answer from the API."""

    def __init__(self, status: int, message: str, code: Optional[str] = None, details=None):
        self.status = status
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


def _filter_params(filters: Optional[dict[str, Any]]) -> dict[str, Any]:
    if not filters:
        return {}
    return {key: value for key, value in filters.items() if value not in (None, "")}


class ApiClient:
    """Session-cookie client; one instance keeps one signed-in browser session.

    ``on_unauthorized`` runs on every 401, mirroring a session refresh.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        on_unauthorized: Optional[Callable[[], Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30,
    ):
        self.on_unauthorized = on_unauthorized
        self.client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _ensure_ok(self, response: httpx.Response, fallback: str) -> None:
        if response.is_success:
            return

        if response.status_code == 401 and self.on_unauthorized is not None:
            result = self.on_unauthorized()
            if hasattr(result, "__await__"):
                await result

        try:
            payload = response.json()
        except ValueError:
            payload = None

        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            raise ApiError(
                response.status_code,
                error.get("message") or fallback,
                code=error.get("code"),
                details=error.get("details"),
            )
        raise ApiError(response.status_code, fallback)

    async def _request(self, method: str, url: str, fallback: str, **kwargs) -> Any:
        response = await self.client.request(method, url, **kwargs)
        await self._ensure_ok(response, fallback)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ---------- Auth ----------
    async def register(self, email: str, password: str, name: str) -> dict:
        data = await self._request(
            "POST",
            "/api/auth/register",
            "Failed to register.",
            json={"email": email, "password": password, "name": name},
        )
        return data["user"]

    async def login(self, email: str, password: str) -> dict:
        data = await self._request(
            "POST",
            "/api/auth/login",
            "Failed to log in.",
            json={"email": email, "password": password},
        )
        return data["user"]

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout", "Failed to log out.")

    async def get_session(self) -> dict:
        data = await self._request("GET", "/api/auth/session", "Session invalid.")
        return data["user"]

    async def verify_email(self, token: str) -> dict:
        return await self._request(
            "GET",
            "/api/auth/verify-email",
            "Failed to verify email.",
            params={"token": token},
        )

    async def resend_verification(self, email: str) -> dict:
        return await self._request(
            "POST",
            "/api/auth/resend-verification",
            "Failed to resend verification email.",
            json={"email": email},
        )

    # ---------- Projects ----------
    async def list_projects(self, filters: Optional[dict] = None) -> list[dict]:
        data = await self._request(
            "GET", "/api/projects", "Failed to fetch projects.", params=_filter_params(filters)
        )
        return data["projects"]

    async def get_project(self, project_id: str) -> dict:
        return await self._request(
            "GET", f"/api/projects/{project_id}", "Failed to fetch project."
        )

    async def create_project(self, values: dict) -> dict:
        data = await self._request(
            "POST", "/api/projects", "Failed to create project.", json=values
        )
        return data["project"]

    async def update_project(self, project_id: str, values: dict) -> dict:
        data = await self._request(
            "PATCH", f"/api/projects/{project_id}", "Failed to update project.", json=values
        )
        return data["project"]

    async def update_project_status(self, project_id: str, status: str) -> dict:
        return await self.update_project(project_id, {"status": status})

    async def delete_project(self, project_id: str) -> None:
        await self._request(
            "DELETE", f"/api/projects/{project_id}", "Failed to delete project."
        )

    # ---------- Tasks ----------
    async def list_tasks(self, filters: Optional[dict] = None) -> list[dict]:
        data = await self._request(
            "GET", "/api/tasks", "Failed to fetch tasks.", params=_filter_params(filters)
        )
        return data["tasks"]

    async def create_task(self, values: dict) -> dict:
        body = {
            **values,
            "description": values.get("description"),
            "dueDate": values.get("dueDate") or None,
            "priority": values.get("priority"),
            "projectId": values.get("projectId"),
        }
        data = await self._request("POST", "/api/tasks", "Failed to create task.", json=body)
        return data["task"]

    async def update_task(self, task_id: str, values: dict) -> dict:
        body = dict(values)
        if "dueDate" in body:
            body["dueDate"] = body["dueDate"] or None
        data = await self._request(
            "PATCH", f"/api/tasks/{task_id}", "Failed to update task.", json=body
        )
        return data["task"]

    async def update_task_status(self, task_id: str, status: str) -> dict:
        data = await self._request(
            "PATCH",
            f"/api/tasks/{task_id}/status",
            "Failed to update task status.",
            json={"status": status},
        )
        return data["task"]

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}", "Failed to delete task.")

    # ---------- Clients ----------
    async def list_clients(self, filters: Optional[dict] = None) -> dict:
        """Returns ``{"clients": [...], "pagination": {...}}``."""
        return await self._request(
            "GET", "/api/clients", "Failed to fetch clients.", params=_filter_params(filters)
        )

    async def create_client(self, values: dict) -> dict:
        data = await self._request(
            "POST", "/api/clients", "Failed to create client.", json=values
        )
        return data["client"]

    async def update_client(self, client_id: str, values: dict) -> dict:
        data = await self._request(
            "PATCH", f"/api/clients/{client_id}", "Failed to update client.", json=values
        )
        return data["client"]

    async def delete_client(self, client_id: str) -> None:
        await self._request(
            "DELETE", f"/api/clients/{client_id}", "Failed to delete client."
        )

    # ---------- Files ----------
    async def list_files(self, filters: Optional[dict] = None) -> list[dict]:
        data = await self._request(
            "GET", "/api/files", "Failed to fetch files.", params=_filter_params(filters)
        )
        return data["files"]

    async def upload_file(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        description: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> dict:
        form = {}
        if description is not None:
            form["description"] = description
        if project_id is not None:
            form["projectId"] = project_id
        data = await self._request(
            "POST",
            "/api/files",
            "Failed to upload file.",
            files={"file": (filename, content, content_type)},
            data=form,
        )
        return data["file"]

    async def download_file(self, file_id: str) -> bytes:
        response = await self.client.get(f"/api/files/{file_id}")
        await self._ensure_ok(response, "Failed to download file.")
        return response.content

    async def update_file(self, file_id: str, values: dict) -> dict:
        data = await self._request(
            "PATCH", f"/api/files/{file_id}", "Failed to update file.", json=values
        )
        return data["file"]

    async def delete_file(self, file_id: str) -> None:
        await self._request("DELETE", f"/api/files/{file_id}", "Failed to delete file.")

    async def storage_health(self) -> dict:
        return await self._request(
            "GET", "/api/storage/health", "Cloud storage health check failed."
        )
