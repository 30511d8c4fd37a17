import asyncio
from typing import Any, Dict, Optional
from sqlite2scylla.connectors.scylla import ScyllaConnector
from sqlite2scylla.errors import MigrationTimeoutError, RowError, WriteError
from sqlite2scylla.models.rows import TargetRow
from loguru import logger

INSERT_QUERY = "INSERT INTO {keyspace}.{table} (id, column1, column2) VALUES (?, ?, ?)"

class WriteExecutor:
    def __init__(self, connector: ScyllaConnector, keyspace: str, table: str):
        self.connector = connector
        self.query = INSERT_QUERY.format(keyspace=keyspace, table=table)
        self._prepared: Optional[Any] = None

    def prepare(self) -> None:
        try:
            self._prepared = self.connector.prepare(self.query)
            logger.debug(f"Prepared insert statement: {self.query}")
        except Exception as e:
            logger.error(f"Failed to prepare insert statement: {self.query}, error: {str(e)}")
            raise WriteError(str(e)) from e

    async def insert(self, row: TargetRow) -> None:
        """按 (id, column1, column2) 的顺序绑定参数, 发出写入并等待完成"""
        if self._prepared is None:
            self.prepare()
        try:
            await self.connector.execute(self._prepared, row.values())
        except MigrationTimeoutError:
            raise
        except Exception as e:
            raise WriteError(str(e)) from e

class InFlightWindow:
    """
    限制同时在途的写入数量

    max_in_flight 为 1 时每次写入都会在下一行之前等待完成, 写入顺序与源顺序一致.
    出现失败时先等待其余在途写入结束, 再以失败行号抛出 RowError.
    """

    def __init__(self, executor: WriteExecutor, max_in_flight: int = 1):
        self.executor = executor
        self.max_in_flight = max_in_flight
        self.completed = 0
        self._pending: Dict[asyncio.Task, int] = {}

    async def submit(self, index: int, row: TargetRow) -> None:
        task = asyncio.create_task(self.executor.insert(row))
        self._pending[task] = index
        while len(self._pending) >= self.max_in_flight:
            await self._wait(asyncio.FIRST_COMPLETED)

    async def drain(self) -> None:
        while self._pending:
            await self._wait(asyncio.ALL_COMPLETED)

    async def _wait(self, return_when: str) -> None:
        done, _ = await asyncio.wait(list(self._pending), return_when=return_when)
        failure = None
        for task in sorted(done, key=self._pending.get):
            index = self._pending.pop(task)
            exc = task.exception()
            if exc is None:
                self.completed += 1
            elif failure is None:
                failure = (index, exc)

        if failure is not None:
            await self.abandon()
            raise RowError(*failure)

    async def abandon(self) -> None:
        # 已经失败, 剩余的写入只等待结束, 不再报告
        if not self._pending:
            return
        results = await asyncio.gather(*self._pending, return_exceptions=True)
        self.completed += sum(1 for r in results if not isinstance(r, BaseException))
        self._pending.clear()
