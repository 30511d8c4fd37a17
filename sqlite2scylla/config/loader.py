import json
import re
from typing import Any, Dict, List
from sqlite2scylla.errors import ConfigError
from sqlite2scylla.models.config import (
    DEFAULT_CONSTANTS,
    ClusterConfig,
    FieldMapping,
    MigrationConfig,
    SourceConfig,
    TableMapping,
)
from loguru import logger

TARGET_COLUMNS = ("column1", "column2")
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

def _check_identifier(kind: str, name: Any) -> None:
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.fullmatch(name):
        raise ConfigError(f"Invalid {kind} name: {name!r}")

def _build_cluster_config(data: Dict[str, Any]) -> ClusterConfig:
    kwargs = dict(data)
    contact_points = kwargs.get("contact_points")
    if contact_points is not None:
        if isinstance(contact_points, str):
            contact_points = [p.strip() for p in contact_points.split(",") if p.strip()]
        if not contact_points:
            raise ConfigError("target.contact_points must not be empty")
        kwargs["contact_points"] = tuple(contact_points)
    config = ClusterConfig(**kwargs)
    _check_identifier("keyspace", config.keyspace)
    return config

def _build_table_mapping(data: Dict[str, Any]) -> TableMapping:
    fields = [FieldMapping(**f) for f in data.get("fields", [])]
    for f in fields:
        if f.target not in TARGET_COLUMNS:
            raise ConfigError(f"Unknown target column in field mapping: {f.target}")

    constants = dict(DEFAULT_CONSTANTS)
    constants.update(data.get("constants", {}))
    unknown = set(constants) - set(TARGET_COLUMNS)
    if unknown:
        raise ConfigError(f"Unknown target column in constants: {sorted(unknown)}")

    table_mapping = TableMapping(
        source=data.get("source", "my_table"),
        target=data.get("target", data.get("source", "my_table")),
        fields=fields,
        constants=constants,
    )
    _check_identifier("target table", table_mapping.target)
    return table_mapping

def parse_config(data: Dict[str, Any]) -> MigrationConfig:
    """
    从字典构建迁移配置

    Args:
        data: 已解析的JSON内容

    Returns:
        MigrationConfig对象

    Raises:
        ConfigError: 缺少必要字段或字段值无效
    """
    try:
        source_config = SourceConfig(**data["source"])
        target_config = _build_cluster_config(data.get("target", {}))

        table_mappings: List[TableMapping] = [
            _build_table_mapping(table) for table in data.get("tables", [{}])
        ]
        if not table_mappings:
            raise ConfigError("At least one table mapping is required")

        config_kwargs = {
            "source": source_config,
            "target": target_config,
            "tables": table_mappings,
        }

        if "max_concurrent_writes" in data:
            config_kwargs["max_concurrent_writes"] = data["max_concurrent_writes"]
            logger.debug(f"使用配置文件中的 max_concurrent_writes: {data['max_concurrent_writes']}")
        else:
            logger.debug("使用默认值 max_concurrent_writes")

        config = MigrationConfig(**config_kwargs)
        if not isinstance(config.max_concurrent_writes, int) or config.max_concurrent_writes < 1:
            raise ConfigError(f"max_concurrent_writes must be a positive integer: {config.max_concurrent_writes}")
        if not isinstance(target_config.replication_factor, int) or target_config.replication_factor < 1:
            raise ConfigError(f"replication_factor must be a positive integer: {target_config.replication_factor}")
        return config

    except ConfigError:
        raise
    except KeyError as e:
        raise ConfigError(f"配置文件缺少必要字段: {str(e)}")
    except TypeError as e:
        raise ConfigError(f"配置文件字段无效: {str(e)}")

def load_config(config_path: str) -> MigrationConfig:
    """
    从JSON文件加载迁移配置

    Args:
        config_path: 配置文件路径

    Returns:
        MigrationConfig对象

    Raises:
        ConfigError: 配置文件不存在、JSON格式错误或内容无效
    """
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"配置文件不存在: {config_path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"配置文件JSON格式错误: {str(e)}")

    if not isinstance(data, dict):
        raise ConfigError("配置文件顶层必须是JSON对象")

    logger.debug(f"读取配置文件内容: {json.dumps(data, indent=2)}")
    config = parse_config(data)
    logger.debug(f"最终配置: tables = {[t.source for t in config.tables]}, "
                 f"max_concurrent_writes = {config.max_concurrent_writes}")
    return config
