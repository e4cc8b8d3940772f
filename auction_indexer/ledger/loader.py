"""Load deployment-supplied collaborators from "module:callable" paths."""

from __future__ import annotations

import importlib
from typing import Any

import structlog

from auction_indexer.config import Settings
from auction_indexer.ledger.client import LedgerClient

logger = structlog.get_logger()


def load_factory(path: str) -> Any:
    """Import the callable named by a "package.module:attribute" path.

    Raises:
        ValueError: If the path is malformed or cannot be imported
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Factory path must look like 'package.module:callable', got '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as err:
        raise ValueError(f"Cannot import factory module '{module_name}'") from err
    try:
        factory = getattr(module, attribute)
    except AttributeError as err:
        raise ValueError(f"Module '{module_name}' has no attribute '{attribute}'") from err
    if not callable(factory):
        raise ValueError(f"Factory '{path}' is not callable")
    return factory


def load_ledger_client(settings: Settings) -> LedgerClient:
    """Build the ledger client named by `settings.ledger_client_factory`.

    Raises:
        ValueError: If no factory is configured or it cannot be loaded
    """
    if not settings.ledger_client_factory:
        raise ValueError("INDEXER_LEDGER_CLIENT must name a ledger client factory")
    factory = load_factory(settings.ledger_client_factory)
    client = factory(settings)
    logger.info("ledger_client_loaded", factory=settings.ledger_client_factory)
    return client


def load_tx_params(settings: Settings) -> Any | None:
    """Build transaction-signing parameters, or None when not configured.

    The parameters are opaque to the indexer; they are handed unchanged to
    `SimulationResult.send_transaction`.
    """
    if not settings.tx_params_factory:
        logger.info("auto_actions_disabled", reason="INDEXER_TX_PARAMS not set")
        return None
    factory = load_factory(settings.tx_params_factory)
    params = factory(settings)
    logger.info("auto_actions_enabled", factory=settings.tx_params_factory)
    return params
