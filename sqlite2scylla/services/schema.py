from cassandra.query import SimpleStatement
from sqlite2scylla.connectors.scylla import ScyllaConnector
from sqlite2scylla.errors import MigrationTimeoutError, SchemaError
from loguru import logger

CREATE_KEYSPACE_QUERY = (
    "CREATE KEYSPACE IF NOT EXISTS {keyspace} "
    "WITH replication = {{ 'class': 'SimpleStrategy', 'replication_factor': {replication_factor} }}"
)

CREATE_TABLE_QUERY = (
    "CREATE TABLE IF NOT EXISTS {keyspace}.{table} ("
    "id uuid PRIMARY KEY, "
    "column1 text, "
    "column2 int"
    ")"
)

class SchemaSynchronizer:
    """在目标集群上创建 keyspace 和表, 重复执行不会改变已有结构"""

    def __init__(self, connector: ScyllaConnector):
        self.connector = connector

    async def _execute_ddl(self, query: str) -> None:
        try:
            await self.connector.execute(SimpleStatement(query))
            logger.debug(f"Successfully executed DDL: {query}")
        except MigrationTimeoutError:
            raise
        except Exception as e:
            logger.error(f"Failed to execute DDL: {query}, error: {str(e)}")
            raise SchemaError(str(e)) from e

    async def ensure_keyspace(self, keyspace: str, replication_factor: int = 1) -> None:
        logger.info(f"Ensuring keyspace: {keyspace} (replication_factor={replication_factor})")
        await self._execute_ddl(CREATE_KEYSPACE_QUERY.format(
            keyspace=keyspace,
            replication_factor=replication_factor,
        ))

    async def ensure_table(self, keyspace: str, table: str) -> None:
        logger.info(f"Ensuring table: {keyspace}.{table}")
        await self._execute_ddl(CREATE_TABLE_QUERY.format(keyspace=keyspace, table=table))
