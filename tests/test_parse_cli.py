import json

import parse_cli


def write_statement(tmp_path, text):
    path = tmp_path / "statement.csv"
    path.write_text(text, encoding="utf-8")
    return path


def test_prints_statement_json(tmp_path, capsys, statement_text):
    path = write_statement(tmp_path, statement_text)

    assert parse_cli.main([str(path)]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["statement_date"] == "18 Mar 2025"
    assert len(data["transactions"]) == 3


def test_writes_standardized_transactions_to_file(tmp_path, statement_text):
    path = write_statement(tmp_path, statement_text)
    out = tmp_path / "out.json"

    rc = parse_cli.main([str(path), "-o", str(out), "--connection-id", "conn-9", "--currency", "SGD"])

    assert rc == 0
    rows = json.loads(out.read_text(encoding="utf-8"))
    assert [row["type"] for row in rows] == ["CREDIT", "DEBIT", "DEBIT"]
    assert rows[0]["account_id"] == "conn-9-My Account 120-123456-7"


def test_parse_error_exits_nonzero(tmp_path, capsys, build_statement):
    text = build_statement("04 Mar 2025,NETS,oops, ,a,b,c,")
    path = write_statement(tmp_path, text)

    assert parse_cli.main([str(path)]) == 1
    assert capsys.readouterr().err.startswith("ERROR: Invalid amount 'oops'")


def test_missing_file_exits_nonzero(tmp_path, capsys):
    assert parse_cli.main([str(tmp_path / "nope.csv")]) == 1
    assert "Failed to load statement file" in capsys.readouterr().err
