class MigrationError(Exception):
    """迁移流程中所有错误的基类"""


class ConfigError(MigrationError, ValueError):
    """配置文件缺失或内容无效"""


class SourceConnectionError(MigrationError):
    """无法打开源数据库"""


class QueryError(MigrationError):
    """源查询解析或执行失败"""


class ConnectError(MigrationError):
    """无法连接目标集群"""


class SchemaError(MigrationError):
    """建 keyspace / 建表语句执行失败"""


class RowTypeError(MigrationError, TypeError):
    """源值无法转换为目标列类型"""


class WriteError(MigrationError):
    """单行写入失败"""


class MigrationTimeoutError(MigrationError, TimeoutError):
    """等待异步操作超时"""


class RowError(MigrationError):
    """第 index 行处理失败, cause 为底层的转换或写入错误"""

    def __init__(self, index: int, cause: Exception):
        super().__init__(f"row {index}: {type(cause).__name__}: {cause}")
        self.index = index
        self.cause = cause
