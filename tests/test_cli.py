"""Smoke tests for the contact-graph CLI."""

import pytest
from click.testing import CliRunner

from contact_graph.cli import cli
from contact_graph.settings import settings


@pytest.fixture(autouse=True)
def no_revision_stamps(monkeypatch):
    monkeypatch.setattr(settings, "stamp_revision", False)


@pytest.fixture
def vault(tmp_path):
    (tmp_path / "Alice.md").write_text(
        "---\nUID: alice-1\nFN: Alice\n---\n## Related\n- Daughter [[Carol]]\n", encoding="utf-8"
    )
    (tmp_path / "Carol.md").write_text("---\nUID: carol-1\nFN: Carol\n---\n", encoding="utf-8")
    return tmp_path


def invoke(*args):
    return CliRunner().invoke(cli, list(args))


class TestCli:
    def test_sync_by_display_name(self, vault):
        result = invoke("--vault", str(vault), "sync", "Alice")

        assert result.exit_code == 0, result.output
        carol = (vault / "Carol.md").read_text(encoding="utf-8")
        assert "RELATED[parent]: id:alice-1" in carol
        assert "GENDER: F" in carol
        assert carol.endswith("## Related\n- Parent [[Alice]]\n")

    def test_view_by_id(self, vault):
        invoke("--vault", str(vault), "sync", "alice-1")
        (vault / "Carol.md").write_text(
            (vault / "Carol.md").read_text(encoding="utf-8").replace("## Related\n- Parent [[Alice]]\n", ""),
            encoding="utf-8",
        )

        result = invoke("--vault", str(vault), "view", "carol-1")

        assert result.exit_code == 0, result.output
        assert (vault / "Carol.md").read_text(encoding="utf-8").endswith("## Related\n- Parent [[Alice]]\n")

    def test_full_sync(self, vault):
        result = invoke("--vault", str(vault), "full-sync", "Carol")
        assert result.exit_code == 0, result.output

    def test_unknown_contact(self, vault):
        result = invoke("--vault", str(vault), "sync", "Nobody")
        assert result.exit_code != 0
        assert "No contact" in result.output

    def test_validate_clean_vault(self, vault):
        result = invoke("--vault", str(vault), "validate")
        assert result.exit_code == 0, result.output
        assert "No relationship issues found" in result.output

    def test_stats(self, vault):
        result = invoke("--vault", str(vault), "stats")
        assert result.exit_code == 0, result.output
        assert "Phantoms" in result.output

    def test_missing_vault(self, monkeypatch):
        monkeypatch.setattr(settings, "vault_path", None)
        result = invoke("stats")
        assert result.exit_code == 2
