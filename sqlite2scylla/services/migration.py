import time
from enum import Enum
from typing import Dict, Optional
from sqlite2scylla.connectors.scylla import ScyllaConnector
from sqlite2scylla.connectors.sqlite import SQLiteConnector
from sqlite2scylla.errors import RowError, RowTypeError
from sqlite2scylla.models.config import MigrationConfig, TableMapping
from sqlite2scylla.services.mapper import TypeMapper
from sqlite2scylla.services.schema import SchemaSynchronizer
from sqlite2scylla.services.writer import InFlightWindow, WriteExecutor
from loguru import logger

class MigrationState(Enum):
    INIT = "init"
    SOURCE_OPENED = "source_opened"
    TARGET_CONNECTED = "target_connected"
    SCHEMA_READY = "schema_ready"
    MIGRATING = "migrating"
    DONE = "done"
    FAILED = "failed"

class MigrationOrchestrator:
    def __init__(self,
                 config: MigrationConfig,
                 source_connector: Optional[SQLiteConnector] = None,
                 target_connector: Optional[ScyllaConnector] = None):
        self.config = config
        self.source_connector = source_connector or SQLiteConnector(config.source)
        self.target_connector = target_connector or ScyllaConnector(config.target)
        self.state = MigrationState.INIT
        self.stage: Optional[str] = None
        self.error: Optional[Exception] = None
        self.rows_migrated: Dict[str, int] = {}

    def _transition(self, state: MigrationState) -> None:
        logger.info(f"状态变更: {self.state.value} -> {state.value}")
        self.state = state

    def diagnostic(self) -> Optional[str]:
        """失败时返回一行说明: 失败阶段 + 底层错误"""
        if self.error is None:
            return None
        return f"Migration failed at {self.stage}: {type(self.error).__name__}: {self.error}"

    async def cleanup(self) -> None:
        """释放目标会话、集群和源数据库连接"""
        try:
            await self.target_connector.disconnect()
        finally:
            await self.source_connector.disconnect()

    async def synchronize_schema(self) -> None:
        keyspace = self.config.target.keyspace
        synchronizer = SchemaSynchronizer(self.target_connector)
        await synchronizer.ensure_keyspace(keyspace, self.config.target.replication_factor)
        for table_mapping in self.config.tables:
            await synchronizer.ensure_table(keyspace, table_mapping.target)

    async def migrate_table(self, table_mapping: TableMapping) -> int:
        """
        迁移单个表

        逐行转换并写入, 第一行失败即停止

        Returns:
            成功写入的行数

        Raises:
            QueryError: 源查询失败
            RowError: 某一行转换或写入失败
        """
        source_table = table_mapping.source
        target_table = f"{self.config.target.keyspace}.{table_mapping.target}"
        logger.info(f"开始迁移表 {source_table} -> {target_table}")

        mapper = TypeMapper(table_mapping)
        writer = WriteExecutor(self.target_connector, self.config.target.keyspace, table_mapping.target)
        writer.prepare()
        window = InFlightWindow(writer, self.config.max_concurrent_writes)

        table_start_time = time.time()
        rows = self.source_connector.read_table(source_table)
        try:
            for index, source_row in enumerate(rows):
                try:
                    target_row = mapper.translate(source_row)
                except RowTypeError as e:
                    await window.drain()
                    raise RowError(index, e) from e
                await window.submit(index, target_row)
            await window.drain()
        except Exception:
            await window.abandon()
            raise
        finally:
            rows.close()
            self.rows_migrated[table_mapping.target] = window.completed

        total_duration = time.time() - table_start_time
        avg_speed = window.completed / total_duration if total_duration > 0 else 0
        logger.success(f"表 {source_table} -> {target_table} 迁移完成")
        logger.info(f"总记录数: {window.completed}, "
                    f"总耗时: {total_duration:.2f}秒, "
                    f"平均速率: {avg_speed:.2f} 行/秒")
        return window.completed

    async def run(self) -> bool:
        """执行完整迁移, 无论成功或失败都会释放所有资源"""
        start_time = time.time()
        try:
            self.stage = "open source"
            await self.source_connector.connect()
            self._transition(MigrationState.SOURCE_OPENED)

            self.stage = "connect target"
            await self.target_connector.connect()
            self._transition(MigrationState.TARGET_CONNECTED)

            self.stage = "synchronize schema"
            await self.synchronize_schema()
            self._transition(MigrationState.SCHEMA_READY)

            self.stage = "migrate rows"
            self._transition(MigrationState.MIGRATING)
            for table_mapping in self.config.tables:
                await self.migrate_table(table_mapping)

            self.stage = None
            self._transition(MigrationState.DONE)
            logger.success(f"迁移完成, 总耗时: {time.time() - start_time:.2f}秒")
            return True

        except Exception as e:
            self.error = e
            self._transition(MigrationState.FAILED)
            logger.error(self.diagnostic())
            return False

        finally:
            await self.cleanup()
