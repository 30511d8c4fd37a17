import uuid
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence, Tuple


@dataclass(frozen=True)
class SourceRow:
    """源表的一行: 按查询结果顺序排列的 (列名, 值) 对"""
    columns: Tuple[Tuple[str, Any], ...]

    @classmethod
    def from_result(cls, names: Sequence[str], values: Sequence[Any]) -> "SourceRow":
        return cls(tuple(zip(names, values)))

    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.columns)

    def __contains__(self, name: str) -> bool:
        return any(column == name for column, _ in self.columns)

    def __getitem__(self, name: str) -> Any:
        for column, value in self.columns:
            if column == name:
                return value
        raise KeyError(name)

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)


@dataclass(frozen=True)
class TargetRow:
    id: uuid.UUID
    column1: Optional[str]
    column2: Optional[int]

    def values(self) -> Tuple[uuid.UUID, Optional[str], Optional[int]]:
        """按目标表的列声明顺序返回绑定值"""
        return (self.id, self.column1, self.column2)
