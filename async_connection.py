"""
Async wrapper for blocking Scalaris connections
"""
import asyncio
import functools
from typing import Any, Callable

from connection import JSONRPCConnection, SSLConnection


class AsyncConnection:
    """
    Async wrapper running a blocking connection in the default executor

    Calls are not serialized: awaiting two calls concurrently on one
    instance raises ConnectionBusyError for the second one.
    """

    def __init__(self, *args, factory: Callable[..., JSONRPCConnection] = SSLConnection, **kwargs):
        self.factory = factory
        self.args = args
        self.kwargs = kwargs
        self.connection = None

    async def __aenter__(self):
        # Run the synchronous connection creation in thread pool
        loop = asyncio.get_running_loop()
        self.connection = await loop.run_in_executor(
            None, functools.partial(self.factory, *self.args, **self.kwargs)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.connection:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.connection.close)

    def _require_connection(self) -> JSONRPCConnection:
        if not self.connection:
            raise RuntimeError("Connection not established")
        return self.connection

    async def exec_call(self, methodname: str, params: Any) -> Any:
        """Make an async RPC call"""
        connection = self._require_connection()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, connection.exec_call, methodname, params)

    async def call(self, methodname: str, *args) -> Any:
        """Make an async RPC call with positional parameters"""
        return await self.exec_call(methodname, list(args))

    def is_open(self) -> bool:
        return self.connection is not None and self.connection.is_open()
