"""Atomic execution of a batch of built statements."""

import logging
import time
from typing import Optional, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sqlpane.exceptions import TransactionError
from sqlpane.models import Query

logger = logging.getLogger(__name__)


class TransactionExecutor:
    """Runs an ordered list of queries inside a single transaction.

    Either every query is applied and the transaction commits, or the first
    failing query aborts the transaction and nothing is applied.
    """

    def __init__(self, engine: Engine, paramstyle: str, provider: Optional[str] = None) -> None:
        """Initialize the executor.

        Args:
            engine: Engine owning the driver's connection.
            paramstyle: DB-API paramstyle of the engine's client library.
            provider: Provider name used in error reports.
        """
        self.engine = engine
        self.paramstyle = paramstyle
        self.provider = provider

    def execute(self, queries: Sequence[Query]) -> int:
        """Execute ``queries`` in order, all or nothing.

        Returns:
            Total number of rows affected.

        Raises:
            TransactionError: If any query fails; the transaction is rolled back.
        """
        if not queries:
            return 0

        start_time = time.time()
        rows_affected = 0
        index = 0
        query: Optional[Query] = None

        try:
            with self.engine.begin() as conn:
                for index, query in enumerate(queries):
                    logger.debug(f"Executing pending statement {index + 1}/{len(queries)}: {query.text}")
                    if query.args:
                        result = conn.exec_driver_sql(query.text, query.parameters(self.paramstyle))
                    else:
                        result = conn.exec_driver_sql(query.text, execution_options={"no_parameters": True})
                    if result.rowcount and result.rowcount > 0:
                        rows_affected += result.rowcount

        except SQLAlchemyError as e:
            logger.warning(
                f"Rolled back {len(queries)} pending statement(s); statement {index + 1} failed: {e}"
            )
            raise TransactionError(
                f"Pending changes rolled back, statement {index + 1} of {len(queries)} failed: {e}",
                provider=self.provider,
                statement=query.text if query else None,
                statement_index=index,
            ) from e

        execution_time = time.time() - start_time
        logger.info(
            f"Committed {len(queries)} pending statement(s) in {execution_time:.2f}s "
            f"({rows_affected} rows affected)"
        )
        return rows_affected
