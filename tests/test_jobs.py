"""Tests for the command line jobs."""

import json
from pathlib import Path

import httpx
import pytest
import respx

from deckforge.config import settings
from deckforge.jobs.download_cards import run_download
from deckforge.jobs.render_decks import artifact_name, main, read_entries
from deckforge.models.deck import Layout
from deckforge.services.batch import BatchEntry
from tests.conftest import KNOWN_CODE


@pytest.fixture
def decks_file(tmp_path: Path) -> Path:
    path = tmp_path / "decks.txt"
    path.write_text(
        "# weekly ladder decks\n"
        f"ETC Mage:{KNOWN_CODE}\n"
        "\n"
        "broken:not a deck code!\n"
        f"{KNOWN_CODE}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def card_data(sample_records: list[dict], tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "cards.json"
    path.write_text(json.dumps(sample_records), encoding="utf-8")
    monkeypatch.setattr(settings, "card_data_path", str(path))
    return path


class TestRenderDecksJob:
    def test_read_entries_skips_comments_and_blanks(self, decks_file: Path) -> None:
        """One entry per deck line."""
        entries = read_entries(decks_file)

        assert [e.title for e in entries] == ["ETC Mage", "broken", None]
        assert entries[2].code == KNOWN_CODE

    def test_artifact_name(self) -> None:
        """Titles become file-safe stems."""
        entry = BatchEntry(code=KNOWN_CODE, title="Big Priest (v2)!")

        assert artifact_name(2, entry, Layout.GROUPS) == "003-big-priest-v2.png"
        assert artifact_name(0, BatchEntry(code=KNOWN_CODE), Layout.TEXT) == "001-deck.txt"

    def test_main_writes_artifacts(self, decks_file: Path, card_data: Path, tmp_path: Path) -> None:
        """Good decks are written; a bad one makes the exit code non-zero."""
        output = tmp_path / "out"

        exit_code = main([str(decks_file), "--layout", "text", "--output", str(output)])

        assert exit_code == 1
        assert sorted(p.name for p in output.iterdir()) == ["001-etc-mage.txt", "003-deck.txt"]
        assert (output / "001-etc-mage.txt").read_text(encoding="utf-8").startswith("### ETC Mage")

    def test_main_format_override(self, decks_file: Path, card_data: Path, tmp_path: Path) -> None:
        """--format relabels every rendered deck."""
        output = tmp_path / "out"

        main([str(decks_file), "--layout", "text", "--format", "twist", "--output", str(output)])

        lines = (output / "003-deck.txt").read_text(encoding="utf-8").splitlines()
        assert lines[1] == "Twist | 40 cards"

    def test_main_rejects_unknown_format(self, decks_file: Path) -> None:
        """Unknown format names are a usage error."""
        with pytest.raises(SystemExit):
            main([str(decks_file), "--format", "duels"])


CARDS_URL = "https://api.example.test/v1/latest/enUS/cards.json"


class TestDownloadCardsJob:
    @respx.mock
    async def test_download_counts_cards(self, sample_records: list[dict], tmp_path: Path) -> None:
        """The downloaded file is loaded once; records without a dbfId are not counted."""
        respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json=sample_records))
        output = tmp_path / "data" / "cards.json"

        count = await run_download(output, CARDS_URL)

        assert count == 4
        assert json.loads(output.read_text()) == sample_records

    @respx.mock
    async def test_empty_download_fails(self, tmp_path: Path) -> None:
        """A download with no usable cards is an error."""
        respx.get(CARDS_URL).mock(return_value=httpx.Response(200, json=[]))

        with pytest.raises(ValueError, match="no cards"):
            await run_download(tmp_path / "cards.json", CARDS_URL)

    @respx.mock
    async def test_http_error_propagates(self, tmp_path: Path) -> None:
        """Failed downloads are raised to the caller."""
        respx.get(CARDS_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            await run_download(tmp_path / "cards.json", CARDS_URL)
