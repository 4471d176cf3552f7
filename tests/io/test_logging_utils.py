import logging

from credgrain.io.logging_utils import LOG_FORMAT, configure_logging


def test_configure_logging_is_idempotent() -> None:
    name = "credgrain.test_configure_logging"
    logger = configure_logging(logging.DEBUG, logger_name=name)
    configure_logging("INFO", logger_name=name)
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
    assert logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_engines_log_under_package_logger(caplog) -> None:
    from credgrain.ledger.allocation import AllocationIdentity, compute_distribution
    from credgrain.ledger.policies import BalancedPolicy

    ids = [AllocationIdentity(id="a", paid=0, cred=(1.0,))]
    with caplog.at_level(logging.INFO, logger="credgrain"):
        compute_distribution([BalancedPolicy(budget=5)], ids, cred_timestamp_ms=0)
    assert any(r.name == "credgrain.ledger.allocation" for r in caplog.records)
