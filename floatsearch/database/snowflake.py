import asyncio
import logging
from typing import Any, List, Optional, Sequence

from .. import config
from ..errors import ExecutionError
from ..query import redact
from .executor import Row

logger = logging.getLogger(__name__)


def _load_p8_as_der_bytes(path: str) -> bytes:
    from cryptography.hazmat.primitives import serialization

    with open(path, "rb") as f:
        raw = f.read()
    is_pem = raw.lstrip().startswith(b"-----BEGIN")
    if is_pem:
        key = serialization.load_pem_private_key(raw, password=None)
    else:
        key = serialization.load_der_private_key(raw, password=None)

    # Snowflake needs unencrypted PKCS#8 DER bytes
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


class SnowflakeExecutor:
    """
    Warehouse executor backed by snowflake-connector-python.

    Each call opens its own connection, submits the query asynchronously and
    polls until it finishes, so the query can be aborted server-side when the
    timeout elapses or the calling task is cancelled.
    """

    def __init__(
        self,
        *,
        account: str,
        warehouse: str,
        user: str,
        private_key_path: str,
        database: str,
        schema: str,
        role: Optional[str] = None,
        timeout_seconds: float = 30.0,
        max_rows: int = 10000,
        poll_interval: float = 0.25,
    ):
        self.account = account
        self.warehouse = warehouse
        self.user = user
        self.private_key_path = private_key_path
        self.database = database
        self.schema = schema
        self.role = role
        self.timeout_seconds = timeout_seconds
        self.max_rows = max_rows
        self.poll_interval = poll_interval

    @classmethod
    def from_config(cls) -> "SnowflakeExecutor":
        return cls(
            account=config.SNOWFLAKE_ACCOUNT,
            warehouse=config.SNOWFLAKE_WAREHOUSE,
            user=config.SNOWFLAKE_USER,
            private_key_path=config.SNOWFLAKE_PRIVATE_KEY_PATH,
            database=config.SNOWFLAKE_DATABASE,
            schema=config.SNOWFLAKE_SCHEMA,
            role=config.SNOWFLAKE_DEFAULT_ROLE,
            timeout_seconds=config.WAREHOUSE_TIMEOUT_SECONDS,
            max_rows=config.WAREHOUSE_MAX_ROWS,
            poll_interval=config.WAREHOUSE_POLL_INTERVAL_SECONDS,
        )

    def _connect(self):
        import snowflake.connector

        common = dict(
            account=self.account,
            warehouse=self.warehouse,
            database=self.database,
            schema=self.schema,
            paramstyle="qmark",
            session_parameters={
                "QUERY_TAG": "api:floatsearch",
            },
        )
        if self.role:
            common["role"] = self.role

        pkb = _load_p8_as_der_bytes(self.private_key_path)
        return snowflake.connector.connect(
            user=self.user,
            private_key=pkb,
            **common
        )

    async def _wait(self, conn, qid: str) -> None:
        while True:
            status = await asyncio.to_thread(conn.get_query_status_throw_if_error, qid)
            if not conn.is_still_running(status):
                return
            await asyncio.sleep(self.poll_interval)

    async def _abort(self, cur, qid: Optional[str]) -> None:
        from snowflake.connector.errors import Error as SnowflakeError

        if not qid:
            return
        try:
            await asyncio.shield(asyncio.to_thread(cur.abort_query, qid))
        except SnowflakeError as e:
            logger.warning("abort of query %s failed: %s", qid, e)

    async def _submit(self, cur, sql: str, params: Sequence[Any]) -> str:
        """
        Submit without waiting for completion. If the caller is cancelled
        mid-submit, the submission is allowed to land and is then aborted.
        """
        from snowflake.connector.errors import Error as SnowflakeError

        submit = asyncio.ensure_future(asyncio.to_thread(cur.execute_async, sql, list(params)))
        try:
            await asyncio.shield(submit)
        except asyncio.CancelledError:
            try:
                await submit
            except SnowflakeError as e:
                logger.warning("submit failed while cancelling: %s", e)
            else:
                await self._abort(cur, cur.sfqid)
            raise
        return cur.sfqid

    @staticmethod
    async def _close(conn) -> None:
        await asyncio.shield(asyncio.to_thread(conn.close))

    async def execute(self, sql: str, params: Sequence[Any]) -> List[Row]:
        from snowflake.connector import DictCursor
        from snowflake.connector.errors import Error as SnowflakeError

        logger.info("executing: %s", redact(sql))
        try:
            conn = await asyncio.to_thread(self._connect)
        except (SnowflakeError, OSError, ValueError) as e:
            raise ExecutionError(f"warehouse connection failed: {e}") from e

        try:
            cur = conn.cursor(DictCursor)
            qid = await self._submit(cur, sql, params)
            try:
                async with asyncio.timeout(self.timeout_seconds):
                    await self._wait(conn, qid)
            except TimeoutError:
                await self._abort(cur, qid)
                raise ExecutionError(f"query timed out after {self.timeout_seconds:g}s") from None
            except asyncio.CancelledError:
                await self._abort(cur, qid)
                raise
            await asyncio.to_thread(cur.get_results_from_sfqid, qid)
            raw = await asyncio.to_thread(cur.fetchmany, self.max_rows)
        except SnowflakeError as e:
            raise ExecutionError(f"warehouse query failed: {e}") from e
        finally:
            await self._close(conn)

        rows = [{str(k).lower(): v for k, v in r.items()} for r in raw]
        logger.info("warehouse returned %d rows", len(rows))
        return rows
