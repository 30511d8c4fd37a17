import re
import uuid
from typing import Any, Callable, Dict, Optional
from sqlite2scylla.errors import RowTypeError
from sqlite2scylla.models.config import TableMapping
from sqlite2scylla.models.rows import SourceRow, TargetRow

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1
INT_PATTERN = re.compile(r"[+-]?[0-9]+")

def to_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise RowTypeError(f"Value is not valid UTF-8 text: {e}") from e
    if isinstance(value, bool):
        raise RowTypeError(f"Cannot convert boolean {value!r} to text")
    if isinstance(value, (int, float)):
        return str(value)
    raise RowTypeError(f"Cannot convert {type(value).__name__} to text")

def to_int32(value: Any) -> Optional[int]:
    """
    转换为 32 位有符号整数

    超出范围时报错, 不做截断或回绕
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise RowTypeError(f"Cannot convert boolean {value!r} to int")

    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise RowTypeError(f"Cannot convert non-integral number {value!r} to int")
        number = int(value)
    elif isinstance(value, (str, bytes, bytearray)):
        raw = to_text(value).strip()
        if not INT_PATTERN.fullmatch(raw):
            raise RowTypeError(f"Value {raw!r} is not a valid int")
        number = int(raw, 10)
    else:
        raise RowTypeError(f"Cannot convert {type(value).__name__} to int")

    if not INT32_MIN <= number <= INT32_MAX:
        raise RowTypeError(f"Value {number} is out of range for a 32-bit int")
    return number

COLUMN_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "column1": to_text,
    "column2": to_int32,
}

class TypeMapper:
    """
    把源行转换为目标表的行

    id 每次都重新生成 (基于时间的 UUID), 不从源表读取.
    column1 / column2 优先按字段映射从源行中按列名取值, 没有映射时使用配置的常量.
    """

    def __init__(self, table_mapping: TableMapping):
        self.table_mapping = table_mapping
        self._field_mapping = {f.target: f.source for f in table_mapping.fields}

    def _value_for(self, source_row: SourceRow, column: str) -> Any:
        source_column = self._field_mapping.get(column)
        if source_column is None:
            return self.table_mapping.constants.get(column)
        if source_column not in source_row:
            raise RowTypeError(f"Column {source_column!r} not found in source row")
        return source_row[source_column]

    def translate(self, source_row: SourceRow) -> TargetRow:
        values = {
            column: convert(self._value_for(source_row, column))
            for column, convert in COLUMN_CONVERTERS.items()
        }
        return TargetRow(id=uuid.uuid1(), **values)
