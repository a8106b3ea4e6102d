#!/usr/bin/env python3
"""Parse DBS checking/savings statement CSV exports.

The export is not well-formed CSV: the three trailing reference fields of a
transaction line are free text that may contain commas, and nothing is quoted.
A comma followed by a space is treated as text; any other comma separates
fields.

This parser is strict (fast-fail): a malformed line, a missing transaction
table or a non-numeric amount raises instead of producing a partial statement.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from statement_logging import get_logger


logger = get_logger("dbs_statement.parser")

MONEY_Q = Decimal("0.01")
HEADER_LINE_COUNT = 4
LEADING_FIELD_COUNT = 4
TRAILING_FIELD_COUNT = 3
TRANSACTION_TABLE_HEADER = "Transaction Date,Reference,Debit Amount,Credit Amount"
DEFAULT_CURRENCY = "SGD"

# One trailing field, opened by a comma. The body may hold any character but a
# comma, or a comma directly followed by a space. The closing comma must not
# be followed by a space; it also opens the next field.
TRAILING_FIELD_RE = re.compile(r",((?:[^,]|, )*),(?! )")
PLAIN_AMOUNT_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
BALANCE_NOISE_RE = re.compile(r"[^0-9.\-]")


class ParseError(RuntimeError):
    pass


class StructuralError(ParseError):
    pass


class GrammarError(ParseError):
    pass


class NumericError(ParseError):
    pass


class EmptyDocumentError(ParseError):
    pass


class StatementLoadError(RuntimeError):
    pass


@dataclass(frozen=True)
class Transaction:
    date: str
    reference: str
    ref1: str
    ref2: str
    ref3: str
    # Positive for a debit, negative for a credit.
    amount: Decimal

    @property
    def is_credit(self) -> bool:
        return self.amount < 0


@dataclass(frozen=True)
class AccountStatement:
    account_name: str
    statement_date: str
    available_balance: Decimal
    ledger_balance: Decimal
    transactions: Tuple[Transaction, ...] = ()


def split_header_line(line: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in line.split(","))


def strip_reference(value: str) -> str:
    stripped = value.strip()
    # A trailing comma is content only while its space follows it.
    if stripped.endswith(","):
        stripped += " "
    return stripped


def split_transaction_line(line: str, context: str = "transaction line") -> Tuple[str, ...]:
    """Split a transaction line into its seven fields.

    ``date, reference, debit, credit`` never contain commas and are split
    plainly. ``ref1, ref2, ref3`` are matched one at a time with
    ``TRAILING_FIELD_RE``; the export terminates every line with a comma, so
    the third field is always closed. Text after the third field is ignored.
    """

    parts = line.split(",", LEADING_FIELD_COUNT)
    if len(parts) <= LEADING_FIELD_COUNT:
        raise GrammarError(
            f"Expected {LEADING_FIELD_COUNT} leading fields followed by references at {context}: {line!r}"
        )

    fields: List[str] = [part.strip() for part in parts[:LEADING_FIELD_COUNT]]
    remainder = "," + parts[LEADING_FIELD_COUNT]
    pos = 0
    for idx in range(1, TRAILING_FIELD_COUNT + 1):
        m = TRAILING_FIELD_RE.match(remainder, pos)
        if m is None:
            raise GrammarError(
                f"Could not extract reference field {idx} of {TRAILING_FIELD_COUNT} at {context}: {line!r}"
            )
        fields.append(strip_reference(m.group(1)))
        pos = m.end() - 1

    return tuple(fields)


def parse_amount(raw: str, context: str) -> Decimal:
    token = raw.strip()
    if not PLAIN_AMOUNT_RE.fullmatch(token):
        raise NumericError(f"Invalid amount {raw!r} at {context}")
    return Decimal(token)


def parse_balance(raw: str, context: str = "balance") -> Decimal:
    token = BALANCE_NOISE_RE.sub("", raw)
    if not PLAIN_AMOUNT_RE.fullmatch(token):
        raise NumericError(f"Invalid balance {raw!r} at {context}")
    return Decimal(token)


def build_transaction(row: Sequence[str], context: str = "transaction line") -> Transaction:
    if len(row) < LEADING_FIELD_COUNT:
        raise GrammarError(f"Transaction row has {len(row)} fields at {context}: {list(row)!r}")

    debit = row[2].strip()
    credit = row[3].strip()
    if debit:
        amount = parse_amount(debit, f"{context} (debit)")
    elif credit:
        amount = -parse_amount(credit, f"{context} (credit)")
    else:
        amount = Decimal("0")

    def ref(idx: int) -> str:
        return row[idx] if len(row) > idx else ""

    return Transaction(
        date=row[0],
        reference=row[1],
        ref1=ref(4),
        ref2=ref(5),
        ref3=ref(6),
        amount=amount,
    )


def header_value(line: str, label: str, context: str) -> str:
    row = split_header_line(line)
    if len(row) < 2:
        raise StructuralError(f"Missing {label} value at {context}: {line!r}")
    return row[1]


def parse_statement_text(text: str) -> AccountStatement:
    lines = [ln.strip() for ln in text.splitlines()]
    lines = [ln for ln in lines if ln]
    if len(lines) < HEADER_LINE_COUNT:
        raise EmptyDocumentError(
            f"Expected at least {HEADER_LINE_COUNT} header lines, found {len(lines)} non-blank lines"
        )

    account_name = header_value(lines[0], "account name", "line 1")
    statement_date = header_value(lines[1], "statement date", "line 2")
    available_balance = parse_balance(header_value(lines[2], "available balance", "line 3"), "line 3")
    ledger_balance = parse_balance(header_value(lines[3], "ledger balance", "line 4"), "line 4")

    header_idx = next((idx for idx, ln in enumerate(lines) if TRANSACTION_TABLE_HEADER in ln), None)
    if header_idx is None:
        raise StructuralError("Could not find transaction header in statement")

    transactions: List[Transaction] = []
    skipped = 0
    for idx in range(header_idx + 1, len(lines)):
        line = lines[idx]
        # Summary/footer rows after the table start with an empty first cell.
        if line.startswith(","):
            skipped += 1
            continue
        context = f"line {idx + 1}"
        transactions.append(build_transaction(split_transaction_line(line, context), context))

    logger.debug(
        "Parsed %d transactions for %r (%d footer rows skipped)",
        len(transactions),
        account_name,
        skipped,
    )
    return AccountStatement(
        account_name=account_name,
        statement_date=statement_date,
        available_balance=available_balance,
        ledger_balance=ledger_balance,
        transactions=tuple(transactions),
    )


def money_to_json(amount: Decimal) -> str:
    return format(amount.quantize(MONEY_Q, rounding=ROUND_HALF_UP), "f")


def transaction_to_json(tx: Transaction) -> dict:
    return {
        "date": tx.date,
        "reference": tx.reference,
        "ref1": tx.ref1,
        "ref2": tx.ref2,
        "ref3": tx.ref3,
        "amount": money_to_json(tx.amount),
        "is_credit": tx.is_credit,
    }


def statement_to_json(statement: AccountStatement) -> dict:
    return {
        "account_name": statement.account_name,
        "statement_date": statement.statement_date,
        "available_balance": money_to_json(statement.available_balance),
        "ledger_balance": money_to_json(statement.ledger_balance),
        "transactions": [transaction_to_json(tx) for tx in statement.transactions],
    }


def describe_transaction(tx: Transaction) -> str:
    parts = [tx.reference, tx.ref1, tx.ref2, tx.ref3]
    return " - ".join(part for part in parts if part and part.strip())


def standardize_transactions(
    statement: AccountStatement,
    connection_id: str,
    currency: str = DEFAULT_CURRENCY,
) -> List[dict]:
    """Map parsed transactions onto the aggregator's standardized shape.

    Amounts are stored unsigned with a ``DEBIT``/``CREDIT`` type; the signed
    value is kept in ``metadata.original_amount``.
    """

    account_id = f"{connection_id}-{statement.account_name}"
    standardized: List[dict] = []
    for tx in statement.transactions:
        standardized.append(
            {
                "id": f"{account_id}-{tx.date}-{tx.reference}",
                "account_id": account_id,
                "date": tx.date,
                "description": describe_transaction(tx),
                "amount": money_to_json(abs(tx.amount)),
                "currency": currency,
                "type": "CREDIT" if tx.is_credit else "DEBIT",
                "metadata": {
                    "original_amount": money_to_json(tx.amount),
                    "reference": tx.reference,
                    "ref1": tx.ref1,
                    "ref2": tx.ref2,
                    "ref3": tx.ref3,
                    "account_name": statement.account_name,
                    "account_balance": money_to_json(statement.ledger_balance),
                },
            }
        )
    logger.debug("Standardized %d transactions for %s", len(standardized), account_id)
    return standardized


def load_statement_text(csv_path: Union[str, Path], encoding: str = "utf-8-sig") -> str:
    path = Path(csv_path)
    try:
        return path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise StatementLoadError(f"Failed to load statement file {path}: {exc}") from exc


def parse_statement(csv_path: Union[str, Path]) -> dict:
    return statement_to_json(parse_statement_text(load_statement_text(csv_path)))
