import asyncio
import threading
import unittest
from unittest import mock
from cassandra import OperationTimedOut
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import NoHostAvailable
from cassandra.query import SimpleStatement
from sqlite2scylla.connectors.scylla import ScyllaConnector, wrap_response_future
from sqlite2scylla.errors import ConnectError, MigrationTimeoutError
from sqlite2scylla.models.config import ClusterConfig
from tests.fakes import FakeClusterFactory, FakeResponseFuture


class TestScyllaConnector(unittest.IsolatedAsyncioTestCase):
    async def test_connect_passes_contact_points(self):
        factory = FakeClusterFactory()
        connector = ScyllaConnector(ClusterConfig(contact_points=("10.0.0.1", "10.0.0.2"), port=19042),
                                    cluster_factory=factory)
        await connector.connect()
        self.assertTrue(connector.connected)
        self.assertIs(connector.session, factory.session)

        kwargs = factory.clusters[0].kwargs
        self.assertEqual(kwargs["contact_points"], ["10.0.0.1", "10.0.0.2"])
        self.assertEqual(kwargs["port"], 19042)
        self.assertIsNone(kwargs["auth_provider"])
        await connector.disconnect()

    async def test_connect_with_credentials(self):
        factory = FakeClusterFactory()
        connector = ScyllaConnector(ClusterConfig(username="scylla", password="secret"),
                                    cluster_factory=factory)
        await connector.connect()
        self.assertIsInstance(factory.clusters[0].kwargs["auth_provider"], PlainTextAuthProvider)
        await connector.disconnect()

    async def test_connect_failure_surfaces_message_and_releases_cluster(self):
        error = NoHostAvailable("Unable to connect to any servers",
                                {"127.0.0.1:9042": ConnectionRefusedError(111, "Connection refused")})
        factory = FakeClusterFactory(connect_error=error)
        connector = ScyllaConnector(ClusterConfig(), cluster_factory=factory)

        with self.assertRaises(ConnectError) as ctx:
            await connector.connect()

        self.assertEqual(str(ctx.exception), str(error))
        self.assertIs(ctx.exception.__cause__, error)
        self.assertFalse(connector.connected)
        self.assertEqual(factory.clusters[0].shutdown_calls, 1)
        self.assertEqual(factory.session.shutdown_calls, 0)

    async def test_disconnect_releases_each_handle_once(self):
        factory = FakeClusterFactory()
        connector = ScyllaConnector(ClusterConfig(), cluster_factory=factory)
        await connector.connect()
        await connector.disconnect()
        await connector.disconnect()
        self.assertEqual(factory.session.shutdown_calls, 1)
        self.assertEqual(factory.clusters[0].shutdown_calls, 1)

    async def test_cluster_released_when_session_shutdown_fails(self):
        factory = FakeClusterFactory()
        connector = ScyllaConnector(ClusterConfig(), cluster_factory=factory)
        await connector.connect()
        factory.session.shutdown = mock.Mock(side_effect=RuntimeError("shutdown failed"))

        with self.assertRaises(RuntimeError):
            await connector.disconnect()

        self.assertEqual(factory.clusters[0].shutdown_calls, 1)
        self.assertFalse(connector.connected)
        await connector.disconnect()
        self.assertEqual(factory.clusters[0].shutdown_calls, 1)

    async def test_request_timeout_forwarded_to_driver(self):
        factory = FakeClusterFactory()
        connector = ScyllaConnector(ClusterConfig(request_timeout=30.0), cluster_factory=factory)
        await connector.connect()
        await connector.execute(SimpleStatement("CREATE KEYSPACE IF NOT EXISTS ks"))
        self.assertEqual(factory.session.timeouts, [30.0])
        await connector.disconnect()

    async def test_no_request_timeout_disables_driver_deadline(self):
        factory = FakeClusterFactory()
        connector = ScyllaConnector(ClusterConfig(), cluster_factory=factory)
        await connector.connect()
        await connector.execute(SimpleStatement("CREATE KEYSPACE IF NOT EXISTS ks"))
        self.assertEqual(factory.session.timeouts, [None])
        await connector.disconnect()

    async def test_driver_timeout_raises_timeout_error(self):
        factory = FakeClusterFactory()
        factory.session.fail_on["CREATE KEYSPACE"] = OperationTimedOut(last_host="127.0.0.1:9042")
        connector = ScyllaConnector(ClusterConfig(request_timeout=30.0), cluster_factory=factory)
        await connector.connect()
        with self.assertRaises(MigrationTimeoutError) as ctx:
            await connector.execute(SimpleStatement("CREATE KEYSPACE IF NOT EXISTS ks"))
        self.assertIsInstance(ctx.exception.__cause__, OperationTimedOut)
        await connector.disconnect()

    async def test_session_requires_connection(self):
        connector = ScyllaConnector(ClusterConfig(), cluster_factory=FakeClusterFactory())
        with self.assertRaises(ConnectError):
            connector.session

    async def test_execute_propagates_driver_error(self):
        factory = FakeClusterFactory()
        connector = ScyllaConnector(ClusterConfig(), cluster_factory=factory)
        await connector.connect()
        with self.assertRaises(Exception) as ctx:
            await connector.execute(SimpleStatement("SELEC broken"))
        self.assertIn("no viable alternative", str(ctx.exception))
        await connector.disconnect()

    async def test_timeout_cancels_request(self):
        factory = FakeClusterFactory()
        factory.session.unresolved = True
        connector = ScyllaConnector(ClusterConfig(request_timeout=0.05), cluster_factory=factory)
        await connector.connect()
        future = FakeResponseFuture(resolve=False)
        with self.assertRaises(MigrationTimeoutError):
            await connector.wait(future)
        self.assertTrue(future.cancelled)
        with self.assertRaises(TimeoutError):
            await connector.execute(SimpleStatement("CREATE KEYSPACE IF NOT EXISTS ks"))
        await connector.disconnect()


class TestWrapResponseFuture(unittest.IsolatedAsyncioTestCase):
    async def test_result_delivered_from_driver_thread(self):
        future = FakeResponseFuture(resolve=False)
        aio_future = wrap_response_future(future, asyncio.get_running_loop())
        callback, _ = future.callbacks
        threading.Timer(0.01, callback, args=(["row"],)).start()
        self.assertEqual(await aio_future, ["row"])

    async def test_error_delivered_from_driver_thread(self):
        future = FakeResponseFuture(resolve=False)
        aio_future = wrap_response_future(future, asyncio.get_running_loop())
        _, errback = future.callbacks
        threading.Timer(0.01, errback, args=(RuntimeError("write timeout"),)).start()
        with self.assertRaises(RuntimeError):
            await aio_future

    async def test_late_result_after_cancel_is_ignored(self):
        future = FakeResponseFuture(resolve=False)
        aio_future = wrap_response_future(future, asyncio.get_running_loop())
        aio_future.cancel()
        callback, _ = future.callbacks
        callback("late")
        await asyncio.sleep(0)
        self.assertTrue(aio_future.cancelled())


if __name__ == '__main__':
    unittest.main()
