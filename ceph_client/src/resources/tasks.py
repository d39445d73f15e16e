from typing import Optional

from ..exceptions import ApiError
from ..schemas import TaskList
from ..session import Session


def raise_for_status(resp, what: str) -> None:
    if not resp.is_success:
        raise ApiError(f"{what}: {resp.status_code} {resp.text[:512]}", status_code=resp.status_code)


class Tasks:
    """Read access to the manager's task list (GET /api/task)."""

    def __init__(self, session: Session):
        self.session = session

    def list(self, name: Optional[str] = None) -> TaskList:
        params = {"name": name} if name else None
        resp = self.session.request("GET", "task", params=params)
        raise_for_status(resp, "could not get tasks")
        return TaskList.model_validate(resp.json())
