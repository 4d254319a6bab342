from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS, DEFAULT_PASS_NO_PREFIX, DEFAULT_PASS_NO_WIDTH, DEFAULT_SCOPE
from .database.connection import DBConfig, DatabaseConnection
from .directory.memory_directory_repository import InMemoryDirectoryRepository
from .directory.mysql_directory_repository import MySQLDirectoryRepository
from .directory.repository import DirectoryRepository
from .gate_passes.allocator import PassNumberAllocator
from .gate_passes.export import GatePassExportService, GatePassRenderer, QRSlipRenderer
from .gate_passes.memory_gate_pass_repository import InMemoryGatePassRepository
from .gate_passes.mysql_gate_pass_repository import MySQLGatePassRepository
from .gate_passes.query import GatePassQueryService
from .gate_passes.repository import GatePassRepository
from .gate_passes.service import GatePassService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    directory_repo: DirectoryRepository
    gate_passes_repo: GatePassRepository

    gate_pass_service: GatePassService
    gate_pass_query: GatePassQueryService
    gate_pass_export: GatePassExportService


def _db_config(db_config: dict) -> DBConfig:
    return DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        connect_timeout=int(db_config.get("connect_timeout", 5)),
        lock_wait_timeout=int(db_config.get("lock_wait_timeout", 5)),
    )


def build_container(
    *,
    db_config: dict | None = None,
    backend: str = "mysql",
    scope: str = DEFAULT_SCOPE,
    pass_no_prefix: str = DEFAULT_PASS_NO_PREFIX,
    pass_no_width: int = DEFAULT_PASS_NO_WIDTH,
    edit_while_out: bool = True,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    directory: DirectoryRepository | None = None,
    renderer: GatePassRenderer | None = None,
) -> Container:
    allocator = PassNumberAllocator(prefix=pass_no_prefix, width=int(pass_no_width))

    conn = None
    if backend == "memory":
        directory_repo = directory or InMemoryDirectoryRepository()
        gate_passes_repo = InMemoryGatePassRepository(allocator=allocator, scope=scope, lock_timeout=lock_timeout)
    elif backend == "mysql":
        if db_config is None:
            raise ValueError("db_config is required for the mysql backend")
        conn = DatabaseConnection.get_instance(_db_config(db_config))
        directory_repo = directory or MySQLDirectoryRepository(conn)
        gate_passes_repo = MySQLGatePassRepository(conn, allocator=allocator, scope=scope)
    else:
        raise ValueError(f"Unknown storage backend: {backend!r}")

    gate_pass_service = GatePassService(gate_passes_repo, directory_repo, edit_while_out=edit_while_out)
    gate_pass_query = GatePassQueryService(gate_passes_repo, directory_repo)
    gate_pass_export = GatePassExportService(gate_pass_query, renderer or QRSlipRenderer())

    return Container(
        conn=conn,
        directory_repo=directory_repo,
        gate_passes_repo=gate_passes_repo,
        gate_pass_service=gate_pass_service,
        gate_pass_query=gate_pass_query,
        gate_pass_export=gate_pass_export,
    )


def build_container_from_settings(settings, **overrides) -> Container:
    """Wire the container from a settings module (see the `config` package)."""

    kwargs = dict(
        db_config=getattr(settings, "DB_CONFIG", None),
        backend=getattr(settings, "STORAGE_BACKEND", "mysql"),
        scope=getattr(settings, "GATE_PASS_SCOPE", DEFAULT_SCOPE),
        pass_no_prefix=getattr(settings, "PASS_NO_PREFIX", DEFAULT_PASS_NO_PREFIX),
        pass_no_width=getattr(settings, "PASS_NO_WIDTH", DEFAULT_PASS_NO_WIDTH),
        edit_while_out=bool(getattr(settings, "EDIT_WHILE_OUT", True)),
        lock_timeout=float(getattr(settings, "LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS)),
    )
    kwargs.update(overrides)
    return build_container(**kwargs)
