import asyncio
from typing import Any, Callable, Optional, Sequence
from cassandra import OperationTimedOut
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, Session
from sqlite2scylla.connectors.base import BaseConnector
from sqlite2scylla.errors import ConnectError, MigrationTimeoutError
from sqlite2scylla.models.config import ClusterConfig
from loguru import logger

def wrap_response_future(response_future, loop: asyncio.AbstractEventLoop) -> asyncio.Future:
    """
    把驱动的 ResponseFuture 转换成当前事件循环上的 asyncio.Future

    驱动在自己的 I/O 线程里回调, 结果通过 call_soon_threadsafe 交回事件循环
    """
    aio_future = loop.create_future()

    def _set_result(result: Any) -> None:
        if not aio_future.done():
            aio_future.set_result(result)

    def _set_exception(exc: BaseException) -> None:
        if not aio_future.done():
            aio_future.set_exception(exc)

    response_future.add_callbacks(
        callback=lambda result: loop.call_soon_threadsafe(_set_result, result),
        errback=lambda exc: loop.call_soon_threadsafe(_set_exception, exc),
    )
    return aio_future

class ScyllaConnector(BaseConnector):
    def __init__(self, config: ClusterConfig, cluster_factory: Callable[..., Cluster] = Cluster):
        super().__init__(config)
        self._cluster_factory = cluster_factory
        self._cluster: Optional[Cluster] = None
        self._session: Optional[Session] = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise ConnectError("Not connected to the cluster")
        return self._session

    async def connect(self) -> None:
        auth_provider = None
        if self.config.username:
            auth_provider = PlainTextAuthProvider(self.config.username, self.config.password)

        contact_points = list(self.config.contact_points)
        try:
            self._cluster = self._cluster_factory(
                contact_points=contact_points,
                port=self.config.port,
                auth_provider=auth_provider,
            )
            # Cluster.connect 会阻塞, 放到线程池里等待
            loop = asyncio.get_running_loop()
            self._session = await loop.run_in_executor(None, self._cluster.connect)
            logger.info(f"Successfully connected to Scylla cluster: {', '.join(contact_points)}")
        except Exception as e:
            message = str(e)
            logger.error(f"Unable to connect to Scylla: '{message}'")
            await self.disconnect()
            raise ConnectError(message) from e

    async def disconnect(self) -> None:
        session, self._session = self._session, None
        cluster, self._cluster = self._cluster, None
        try:
            if session is not None:
                session.shutdown()
        finally:
            if cluster is not None:
                cluster.shutdown()
                logger.info("Disconnected from Scylla cluster")

    async def wait(self, response_future) -> Any:
        """
        等待一个已发出的异步请求完成

        Args:
            response_future: session.execute_async 返回的 ResponseFuture

        Returns:
            请求结果

        Raises:
            MigrationTimeoutError: 超过 request_timeout 或驱动报告请求超时
        """
        aio_future = wrap_response_future(response_future, asyncio.get_running_loop())
        timeout = self.config.request_timeout
        try:
            if timeout is None:
                return await aio_future
            return await asyncio.wait_for(aio_future, timeout)
        except asyncio.TimeoutError as e:
            response_future.cancel()
            raise MigrationTimeoutError(f"Operation did not complete within {timeout}s") from e
        except OperationTimedOut as e:
            raise MigrationTimeoutError(str(e)) from e

    async def execute(self, statement: Any, parameters: Optional[Sequence[Any]] = None) -> Any:
        response_future = self.session.execute_async(statement, parameters, timeout=self.config.request_timeout)
        return await self.wait(response_future)

    def prepare(self, query: str) -> Any:
        return self.session.prepare(query)
