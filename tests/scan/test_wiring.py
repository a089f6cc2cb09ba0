"""Tests for scan/wiring.py."""

from __future__ import annotations

from routesync.scan.wiring import audit_wiring


class TestAuditWiring:
    def test_module_with_own_client(self) -> None:
        content = (
            "require('dotenv').config();\n"
            "const { createClient } = require('@supabase/supabase-js');\n"
            "const supabase = createClient(process.env.SUPABASE_URL, process.env.SUPABASE_KEY);\n"
            "const { data } = await supabase.from('orders').select('*');\n"
        )

        flags = audit_wiring(content)

        assert flags.has_dotenv
        assert flags.has_create_client
        assert not flags.uses_shared_client
        assert flags.uses_client
        assert not flags.client_undefined

    def test_module_with_shared_client(self) -> None:
        content = (
            "const supabase = require('../supabaseClient');\n"
            "const { data } = await supabase.from('users').select('id');\n"
        )

        flags = audit_wiring(content)

        assert flags.uses_shared_client
        assert not flags.has_create_client
        assert not flags.client_undefined

    def test_shared_accessor_call(self) -> None:
        content = "const { supabase } = getSupabase();\nsupabase.from('users');\n"

        flags = audit_wiring(content)

        assert flags.uses_shared_client
        assert not flags.client_undefined

    def test_client_used_but_never_declared(self) -> None:
        content = "router.get('/', async (req, res) => {\n  const { data } = await supabase.from('stores');\n});\n"

        flags = audit_wiring(content)

        assert flags.uses_client
        assert flags.client_undefined

    def test_client_passed_as_parameter(self) -> None:
        content = "module.exports = (supabase) => {\n  return supabase.from('drivers');\n};\n"

        assert not audit_wiring(content).client_undefined

    def test_sql_only_module(self) -> None:
        flags = audit_wiring("const pool = require('../db');\npool.query('SELECT 1');\n")

        assert not flags.uses_client
        assert not flags.client_undefined
        assert flags.to_dict() == {
            "has_dotenv": False,
            "has_create_client": False,
            "uses_shared_client": False,
            "uses_client": False,
            "client_undefined": False,
        }

    def test_lines_of_first_create_and_use(self) -> None:
        content = (
            "const { createClient } = require('@supabase/supabase-js');\n"
            "\n"
            "const supabase = createClient(url, key);\n"
            "router.get('/', async (req, res) => {\n"
            "  const { data } = await supabase.from('orders');\n"
            "});\n"
        )

        flags = audit_wiring(content)

        assert flags.create_client_line == 3
        assert flags.client_use_line == 5

    def test_commented_out_code_ignored(self) -> None:
        content = (
            "// const supabase = createClient(url, key);\n"
            "/* await supabase.from('orders'); */\n"
            "const pool = require('../db');\n"
        )

        flags = audit_wiring(content)

        assert not flags.has_create_client
        assert not flags.uses_client
        assert flags.create_client_line is None
        assert flags.client_use_line is None
