from __future__ import annotations

import logging
from typing import Callable

import pytest

import statement_logging

HEADER_LINES = (
    "Account Details For:,My Account 120-123456-7",
    "Statement as at:,18 Mar 2025",
    "Available Balance:,SGD 1234.56",
    "Ledger Balance:,SGD 1300.00",
)
TABLE_HEADER = (
    "Transaction Date,Reference,Debit Amount,Credit Amount,"
    "Transaction Ref1,Transaction Ref2,Transaction Ref3,"
)


@pytest.fixture(autouse=True)
def _isolate_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give each test an unconfigured ``dbs_statement`` logger.

    Handlers bind to the ``sys.stderr`` current at configuration time, so a
    handler left over from one test would write into another test's capture.
    """

    pkg_logger = logging.getLogger(statement_logging.PKG_LOGGER_NAME)
    monkeypatch.setattr(statement_logging, "_CONFIGURED", False)
    monkeypatch.setattr(pkg_logger, "handlers", [])
    monkeypatch.setattr(pkg_logger, "propagate", pkg_logger.propagate)
    monkeypatch.setattr(pkg_logger, "level", pkg_logger.level)


def make_statement(*rows: str) -> str:
    return "\n".join([*HEADER_LINES, "", TABLE_HEADER, *rows]) + "\n"


@pytest.fixture
def build_statement() -> Callable[..., str]:
    return make_statement


@pytest.fixture
def statement_text() -> str:
    return make_statement(
        "03 Mar 2025,ICT, ,238.00,Incoming PayNow Ref 9938287,From: CHEONG KAR MEI, JEANNIE,OTHR OTHR,",
        "04 Mar 2025,NETS,12.50, ,NETS Payment,Shop A,Purchase,",
        "",
        "05 Mar 2025,ATM,100.00,,,,,",
        ",,Total,,,,,",
    )
