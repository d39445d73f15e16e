from typing import Optional

import httpx

from .config import Settings, settings as default_settings
from .executor import OperationExecutor
from .resources.block import BlockImages
from .resources.fs import FileSystems
from .resources.namespaces import BlockNamespaces
from .resources.snapshots import BlockSnapshots
from .resources.tasks import Tasks
from .schemas import Server
from .session import Session
from .tasks import TaskTracker


class CephClient:
    """
    Client for the Ceph Dashboard REST API.

        client = CephClient(Server(address="10.0.0.1"))
        client.session.login("admin", "secret")
        client.block.create(RBDCreate(pool_name="rbd", name="img", size=1 << 30))

    One client can be shared between threads; each call owns its own attempt
    counter and task descriptor.
    """

    def __init__(
        self,
        server: Server,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings or default_settings
        self.session = Session(server, self.settings, http_client=http_client)

        self.tasks = Tasks(self.session)
        self.tracker = TaskTracker(self.tasks.list, self.settings)
        self.executor = OperationExecutor(self.tracker, self.settings)

        self.block = BlockImages(self.session, self.executor)
        self.snapshots = BlockSnapshots(self.session, self.executor)
        self.namespaces = BlockNamespaces(self.session, self.executor)
        self.fs = FileSystems(self.session)

    def __enter__(self) -> "CephClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()
