"""Tests for scan/extractor.py."""

from __future__ import annotations

from routesync.scan.extractor import blank_comments, columns_used, extract_references, tables_used
from routesync.scan.models import Reference


def _tables(refs: list[Reference]) -> list[tuple[str, str]]:
    return [(r.name, r.idiom) for r in refs if r.kind == "table"]


def _columns(refs: list[Reference]) -> set[tuple[str, str | None]]:
    return {(r.name, r.table) for r in refs if r.kind == "column"}


class TestFluentCalls:
    def test_from_call_any_quote_style(self) -> None:
        content = "supabase.from('Users')\nsupabase.from(\"orders\")\nsupabase.from(`stores`)\n"

        refs = extract_references(content)

        assert _tables(refs) == [
            ("Users", "from_call"),
            ("orders", "from_call"),
            ("stores", "from_call"),
        ]
        assert [r.line for r in refs] == [1, 2, 3]

    def test_select_list_tied_to_chained_from(self) -> None:
        content = "const { data } = await supabase.from('Users').select('id, fullname');\n"

        refs = extract_references(content)

        assert _columns(refs) == {("id", "Users"), ("fullname", "Users")}
        assert {r.idiom for r in refs if r.kind == "column"} == {"select_list"}

    def test_select_list_parsing(self) -> None:
        """Wildcards, casts, aliases, hints and embedded relations."""
        content = (
            "supabase\n"
            "  .from('orders')\n"
            "  .select('*, total::text, amount:total_amount, "
            "users(id, fullname), driver:drivers!orders_driver_id_fkey(fullname), ...stores(name)')\n"
        )

        refs = [r for r in extract_references(content) if r.kind == "column"]

        by_name = {r.name: r for r in refs}
        assert set(by_name) == {"total", "total_amount", "users", "drivers"}
        assert by_name["users"].embedded is True
        assert by_name["drivers"].embedded is True
        assert by_name["total"].embedded is False
        assert all(r.table == "orders" for r in refs)
        assert all(r.line == 3 for r in refs)

    def test_select_after_statement_end_is_untied(self) -> None:
        content = "supabase.from('orders');\nrpc.select('id');\n"

        refs = extract_references(content)

        assert _columns(refs) == {("id", None)}


class TestSqlLiterals:
    def test_from_and_join_with_aliases(self) -> None:
        content = (
            "const result = await pool.query(\n"
            "  'SELECT o.id, o.total, u.fullname FROM orders o "
            "JOIN users u ON u.id = o.user_id WHERE o.id = $1',\n"
            "  [id]\n"
            ");\n"
        )

        refs = extract_references(content)

        assert _tables(refs) == [("orders", "sql_from"), ("users", "sql_join")]
        assert _columns(refs) >= {
            ("id", "orders"),
            ("total", "orders"),
            ("fullname", "users"),
            ("user_id", "orders"),
        }
        assert all(r.line == 2 for r in refs)

    def test_insert_and_update_targets(self) -> None:
        content = (
            "await db.query('INSERT INTO payments (order_id, amount) VALUES ($1, $2)', [a, b]);\n"
            "await db.query('UPDATE Orders SET status = $1 WHERE id = $2', [s, id]);\n"
        )

        refs = extract_references(content)

        assert _tables(refs) == [("payments", "sql_into"), ("Orders", "sql_update")]

    def test_quoted_and_schema_qualified_names(self) -> None:
        content = (
            "db.query('SELECT * FROM \"Orders\" WHERE id = $1');\n"
            'db.query("SELECT * FROM public.\\"Drivers\\"");\n'
            "db.query(`DELETE FROM public.coupons WHERE code = $1`);\n"
        )

        refs = extract_references(content)

        assert [name for name, _ in _tables(refs)] == ["Orders", "Drivers", "coupons"]

    def test_string_templated_sql(self) -> None:
        """Legacy concatenated queries are still scanned."""
        content = "const q = \"SELECT * FROM Users WHERE id = '\" + req.params.id + \"'\";\n"

        refs = extract_references(content)

        assert _tables(refs) == [("Users", "sql_from")]

    def test_comma_separated_from_list(self) -> None:
        content = "db.query('SELECT * FROM orders o, stores s WHERE o.store_id = s.id');\n"

        assert [name for name, _ in _tables(extract_references(content))] == ["orders", "stores"]

    def test_fragment_continuation_is_scanned(self) -> None:
        content = "let sql = 'SELECT id, total ';\nsql += 'FROM orders WHERE driver_id = $1';\n"

        refs = extract_references(content)

        assert _tables(refs) == [("orders", "sql_from")]
        assert refs[0].line == 2


class TestNoiseFiltering:
    def test_from_inside_functions_is_not_a_table(self) -> None:
        content = (
            "db.query('SELECT EXTRACT(YEAR FROM created_at) AS y, "
            "SUBSTRING(code FROM 1 FOR 3) FROM orders');\n"
        )

        assert _tables(extract_references(content)) == [("orders", "sql_from")]

    def test_is_distinct_from_is_not_a_table(self) -> None:
        content = "db.query('SELECT id FROM orders WHERE a IS DISTINCT FROM b');\n"

        assert _tables(extract_references(content)) == [("orders", "sql_from")]

    def test_table_functions_and_subqueries_skipped(self) -> None:
        content = (
            "db.query('SELECT * FROM unnest($1::int[]) AS t(id)');\n"
            "db.query('SELECT * FROM (SELECT id FROM drivers) sub');\n"
        )

        assert _tables(extract_references(content)) == [("drivers", "sql_from")]

    def test_templated_table_name_skipped(self) -> None:
        content = "db.query(`SELECT * FROM ${table} WHERE id = $1`);\n"

        assert _tables(extract_references(content)) == []

    def test_prose_strings_ignored(self) -> None:
        content = "res.status(404).json({ error: 'Order not found in stores' });\n"

        assert extract_references(content) == []

    def test_comments_ignored(self) -> None:
        content = "/* db.query('SELECT * FROM ghosts') */\n// 'SELECT * FROM phantoms'\n"

        assert extract_references(content) == []

    def test_commented_out_fluent_calls_ignored(self) -> None:
        content = (
            "// const r = await supabase.from('legacy_things').select('id');\n"
            "/* supabase.from('old_orders')\n"
            "     .select('total') */\n"
            "const { data } = await supabase.from('orders').select('id');\n"
        )

        refs = extract_references(content)

        assert _tables(refs) == [("orders", "from_call")]
        assert [(r.name, r.line) for r in refs if r.kind == "column"] == [("id", 4)]

    def test_comment_markers_inside_strings_kept(self) -> None:
        content = "fetch('http://example.com');\ndb.query('SELECT id FROM orders /* all */');\n"

        assert _tables(extract_references(content)) == [("orders", "sql_from")]


class TestBlankComments:
    def test_preserves_offsets_and_newlines(self) -> None:
        content = "a(); // tail\n/* one\ntwo */ b();\n"

        blanked = blank_comments(content)

        assert len(blanked) == len(content)
        assert blanked.splitlines() == ["a();        ", "      ", "       b();"]

    def test_strings_untouched(self) -> None:
        content = "const u = 'http://x/*y*/';\n"

        assert blank_comments(content) == content


class TestMemberAccess:
    def test_resolved_alias_members_are_columns(self) -> None:
        content = (
            "const rows = await db.query('SELECT * FROM orders o');\n"
            "console.log(o.total, orders.length, o.toFixed());\n"
        )

        refs = [r for r in extract_references(content) if r.idiom == "member_access"]

        assert [(r.name, r.table, r.line) for r in refs] == [("total", "orders", 2)]

    def test_unresolved_objects_ignored(self) -> None:
        content = "const id = req.params.id;\nres.json(data.rows);\n"

        assert extract_references(content) == []


class TestSummaries:
    def test_tables_used_first_spelling_wins(self) -> None:
        content = "supabase.from('Users');\ndb.query('SELECT * FROM users');\nsupabase.from('orders');\n"

        assert tables_used(extract_references(content)) == ["Users", "orders"]

    def test_columns_used_distinct(self) -> None:
        content = "supabase.from('users').select('id, fullname, ID');\n"

        assert columns_used(extract_references(content)) == ["id", "fullname"]
