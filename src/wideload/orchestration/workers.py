"""Reader and writer worker loops."""

import logging
import time

from ..core.cancellation import CancellationSignal, SampleQueue
from ..store.client import StoreClient
from ..utils.config import WorkloadConfig
from ..workload.pacing import PacingController
from ..workload.payloads import PayloadModel

logger = logging.getLogger(__name__)


def reader_loop(
    worker_id: str,
    store: StoreClient,
    payload: PayloadModel,
    config: WorkloadConfig,
    cancel: CancellationSignal,
    samples: SampleQueue,
) -> bool:
    """Repeatedly read a sampled key and stream result rows to ``samples``.

    Returns:
        False if the SELECT statement could not be prepared, True once the
        loop has observed cancellation
    """
    try:
        statement = store.prepare(payload.select_query)
    except Exception as e:
        logger.error(f"{worker_id}: failed to prepare SELECT statement: {e}")
        return False

    logger.debug(f"{worker_id} started")
    pacing = PacingController.from_config(config, time.monotonic())

    while not cancel.is_cancelled():
        started = time.monotonic()
        try:
            for row in store.execute_iter(statement, payload.select_values()):
                if not samples.send(payload.format_row(row)):
                    break
        except Exception as e:
            logger.error(f"{worker_id}: error reading payload: {e}")

        if cancel.is_cancelled():
            break

        now = time.monotonic()
        delay = pacing.delay(now, now - started)
        if delay > 0:
            cancel.wait(delay)

    logger.debug(f"{worker_id} stopped")
    return True


def writer_loop(
    worker_id: str,
    store: StoreClient,
    payload: PayloadModel,
    config: WorkloadConfig,
    cancel: CancellationSignal,
) -> bool:
    """Repeatedly write a generated row.

    Returns:
        False if the INSERT statement could not be prepared, True once the
        loop has observed cancellation
    """
    try:
        statement = store.prepare(payload.insert_query)
    except Exception as e:
        logger.error(f"{worker_id}: failed to prepare INSERT statement: {e}")
        return False

    logger.debug(f"{worker_id} started")
    pacing = PacingController.from_config(config, time.monotonic())

    while not cancel.is_cancelled():
        started = time.monotonic()
        try:
            store.execute(statement, payload.insert_values())
        except Exception as e:
            logger.error(f"{worker_id}: error inserting payload: {e}")

        if cancel.is_cancelled():
            break

        now = time.monotonic()
        delay = pacing.delay(now, now - started)
        if delay > 0:
            cancel.wait(delay)

    logger.debug(f"{worker_id} stopped")
    return True
