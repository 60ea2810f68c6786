import tempfile
import unittest
from pathlib import Path

from pipegate.contract_store import ContractStore
from pipegate.core.errors import ValidationError
from pipegate.resources import contracts_dir


class TestContractStore(unittest.TestCase):
    def setUp(self) -> None:
        self.store = ContractStore(contracts_dir()).load()

    def test_shipped_schemas_are_valid(self) -> None:
        self.assertEqual(
            self.store.list_schema_names(),
            ["grants.schema.json", "repos.schema.json", "settings.schema.json"],
        )
        self.assertEqual(self.store.check_schemas(), [])

    def test_validate_reports_paths(self) -> None:
        errors = self.store.validate("repos.schema.json", {"repos": [{"id": 0, "path": "org/repo1"}]})
        self.assertEqual(len(errors), 1)
        self.assertTrue(errors[0].startswith("repos/0/id: "))
        self.assertEqual(self.store.validate("repos.schema.json", {"repos": []}), [])

    def test_load_document_rejects_bad_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "grants.yml"
            p.write_text("grants: [unclosed\n", encoding="utf-8")
            with self.assertRaises(ValidationError) as cm:
                self.store.load_document("grants.schema.json", p)
        self.assertEqual(cm.exception.code, "config.invalid")

    def test_unknown_schema(self) -> None:
        with self.assertRaises(KeyError):
            self.store.validate("nope.schema.json", {})

    def test_missing_dir(self) -> None:
        with self.assertRaises(FileNotFoundError):
            ContractStore(Path("/nonexistent/pipegate/contracts")).load()


if __name__ == "__main__":
    unittest.main()
