from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

DEFAULT_CONSTANTS: Dict[str, Any] = {
    "column1": "value1",
    "column2": 100,
}

@dataclass
class SourceConfig:
    path: str

@dataclass(frozen=True)
class ClusterConfig:
    contact_points: Tuple[str, ...] = ("127.0.0.1",)
    port: int = 9042
    keyspace: str = "my_keyspace"
    replication_factor: int = 1
    username: Optional[str] = None
    password: Optional[str] = None
    request_timeout: Optional[float] = None

@dataclass
class FieldMapping:
    source: str
    target: str

@dataclass
class TableMapping:
    source: str = "my_table"
    target: str = "my_table"
    fields: List[FieldMapping] = field(default_factory=list)
    constants: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_CONSTANTS))

@dataclass
class MigrationConfig:
    source: SourceConfig
    target: ClusterConfig = field(default_factory=ClusterConfig)
    tables: List[TableMapping] = field(default_factory=lambda: [TableMapping()])
    max_concurrent_writes: int = 1
