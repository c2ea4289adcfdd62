"""Wiring of one rule into a complete reconciliation run.

This is the composition root: it clones the mirror repository into a
temporary working tree, connects the remote catalog client, creates the
run-wide query pool and hands everything to the engine.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import httpx

from metasync.core.adapters.catalog import HttpCatalogClient
from metasync.core.adapters.git import GitRepository
from metasync.core.config import Rule
from metasync.core.engine import ReconciliationEngine, RunProgress
from metasync.core.errors import ConfigurationError
from metasync.core.fetcher import BatchedFetcher
from metasync.core.models import RunResult
from metasync.core.snapshot import SnapshotStore
from metasync.core.writer import DiskWriter

logger = logging.getLogger(__name__)


def run_rule(
    rule: Rule,
    *,
    progress: RunProgress | None = None,
    keep_workdir: bool = False,
    strict: bool | None = None,
    transport: httpx.BaseTransport | None = None,
) -> RunResult:
    """
    Reconcile every metadata type of `rule` and publish the mirror.

    The working tree is removed afterwards unless `keep_workdir` is set or
    the rule has `debug` enabled.

    Raises:
        RepositoryError: If the clone fails.
        PublishError: If the final commit or push fails.
        ConfigurationError: If the rule allows no concurrent queries.
    """
    if rule.concurrent_queries < 1:
        raise ConfigurationError(f"Rule {rule.name}: concurrentQueries must be >= 1")

    workdir = Path(tempfile.mkdtemp(prefix="metasync-"))
    keep = keep_workdir or rule.debug
    logger.info("Temporal folder: %s", workdir)

    try:
        repo = GitRepository.clone(rule.repo, workdir, rule.branch, rule.repo_credentials)
        with HttpCatalogClient(
            rule.origin_url,
            rule.credentials,
            timeout=rule.request_timeout,
            transport=transport,
        ) as client, ThreadPoolExecutor(
            max_workers=rule.concurrent_queries,
            thread_name_prefix="metasync-query",
        ) as pool:
            engine = ReconciliationEngine(
                client,
                SnapshotStore(workdir),
                DiskWriter(workdir),
                BatchedFetcher(client, pool, chunk_size=rule.chunk_size),
                strict=rule.strict if strict is None else strict,
                progress=progress,
            )
            return engine.run(rule.metadata, repo, rule.committer, rule.branch)
    finally:
        if keep:
            logger.info("Keeping working tree %s", workdir)
        else:
            shutil.rmtree(workdir, ignore_errors=True)
