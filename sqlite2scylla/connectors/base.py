from abc import ABC, abstractmethod
from typing import Any

class BaseConnector(ABC):
    def __init__(self, config: Any):
        self.config = config

    @abstractmethod
    async def connect(self) -> None:
        """建立连接, 失败时释放已创建的资源后抛出异常"""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """
        关闭连接

        可以重复调用, 底层资源只释放一次
        """
        pass

    @property
    @abstractmethod
    def connected(self) -> bool:
        """连接是否处于打开状态"""
        pass
