import sqlite3
from pathlib import Path
from typing import Iterator, Optional
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlite2scylla.connectors.base import BaseConnector
from sqlite2scylla.errors import QueryError, SourceConnectionError
from sqlite2scylla.models.config import SourceConfig
from sqlite2scylla.models.rows import SourceRow
from loguru import logger

def _diagnostic(e: SQLAlchemyError) -> str:
    """取出底层驱动的错误文本"""
    orig = getattr(e, "orig", None)
    return str(orig) if orig is not None else str(e)

def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'

class SQLiteConnector(BaseConnector):
    def __init__(self, config: SourceConfig):
        super().__init__(config)
        self._engine: Optional[Engine] = None
        self._connection: Optional[Connection] = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def _open_readonly(self) -> sqlite3.Connection:
        # 只读模式打开, 文件不存在时报错而不是新建空库
        uri = Path(self.config.path).absolute().as_uri() + "?mode=ro"
        return sqlite3.connect(uri, uri=True)

    async def connect(self) -> None:
        try:
            self._engine = create_engine("sqlite://", creator=self._open_readonly)
            self._connection = self._engine.connect()

            # 测试连接, 非数据库文件在这里报错
            self._connection.execute(text("SELECT count(*) FROM sqlite_master"))
            logger.info(f"Successfully opened SQLite database: {self.config.path}")
        except (SQLAlchemyError, sqlite3.Error) as e:
            message = _diagnostic(e)
            logger.error(f"Can't open database {self.config.path}: {message}")
            await self.disconnect()
            raise SourceConnectionError(message) from e

    async def disconnect(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Disconnected from SQLite database")

    def query(self, sql: str) -> Iterator[SourceRow]:
        """
        执行查询, 返回按源顺序逐行产出的惰性序列

        语句在调用时立即执行, 序列只能遍历一次

        Raises:
            QueryError: 语句解析或执行失败
        """
        if self._connection is None:
            raise QueryError("Source database is not open")
        try:
            result = self._connection.execute(text(sql))
        except SQLAlchemyError as e:
            message = _diagnostic(e)
            logger.error(f"SQL error: {message}")
            raise QueryError(message) from e
        return self._iter_rows(result)

    def _iter_rows(self, result) -> Iterator[SourceRow]:
        names = list(result.keys())
        try:
            for values in result:
                row = SourceRow.from_result(names, tuple(values))
                logger.debug(f"SQLite row: {dict(row.columns)}")
                yield row
        except SQLAlchemyError as e:
            raise QueryError(_diagnostic(e)) from e
        finally:
            result.close()

    def read_table(self, table_name: str) -> Iterator[SourceRow]:
        return self.query(f"SELECT * FROM {quote_identifier(table_name)}")
