from roster_reconciliation.database.bootstrap import SCHEMA_PATH, _strip_create_db_and_use, iter_sql_statements


def test_splitter_keeps_semicolons_inside_quotes():
    sql = "INSERT INTO t VALUES ('a;b');\nINSERT INTO t VALUES (\"c;d\");\nSELECT 1"
    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        'INSERT INTO t VALUES ("c;d")',
        "SELECT 1",
    ]


def test_strip_create_database_and_use():
    sql = "CREATE DATABASE IF NOT EXISTS x;\nUSE x;\nCREATE TABLE a (id INT);"
    assert list(iter_sql_statements(_strip_create_db_and_use(sql))) == ["CREATE TABLE a (id INT)"]


def test_schema_defines_every_collection_table():
    statements = list(iter_sql_statements(SCHEMA_PATH.read_text(encoding="utf-8")))
    created = " ".join(s for s in statements if "CREATE TABLE" in s.upper())
    for table in (
        "employees",
        "shifts",
        "roster_assignments",
        "leave_requests",
        "attendance_records",
        "shift_swap_requests",
        "condition_reports",
    ):
        assert table in created
