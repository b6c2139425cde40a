"""
Tests for `services/file_naming_service.py`.

Covers contract rules:
- Names follow {identity code}_{action token}_{description}.XML.
- Descriptions are cleaned to A-Z/0-9, upper-cased and truncated to 25.
- The unique variant inserts a millisecond timestamp before the extension.
- Parsing recovers the parts, or returns None for non-conforming names.
"""

from __future__ import annotations

import pytest

from domain.errors import FileNameError
from domain.offer import Action
from services.file_naming_service import (
    FileNameParts,
    generate_file_name,
    generate_file_name_from_parts,
    generate_unique_file_name,
    parse_file_name,
)

IDENTITY = "ABCDEFGH12345678"


class TestGenerate:
    def test_canonical_name(self) -> None:
        """Verify the canonical layout and description cleaning."""

        name = generate_file_name(IDENTITY, "INSERIMENTO", "Winter Offer 2024!!")

        assert name == "ABCDEFGH12345678_INSERIMENTO_WINTEROFFER2024.XML"

    @pytest.mark.parametrize(
        "action, token",
        [
            ("insert", "INSERIMENTO"),
            ("update", "AGGIORNAMENTO"),
            ("AGGIORNAMENTO", "AGGIORNAMENTO"),
            (Action.UPDATE, "AGGIORNAMENTO"),
        ],
    )
    def test_action_aliases(self, action, token) -> None:
        """Verify insert/update aliases map to the literal tokens."""

        assert generate_file_name(IDENTITY, action, "x") == f"{IDENTITY}_{token}_X.XML"

    def test_description_truncated_to_25(self) -> None:
        """Verify the description part never exceeds 25 characters."""

        name = generate_file_name(IDENTITY, "insert", "Offerta " * 10)

        assert name == f"{IDENTITY}_INSERIMENTO_{('OFFERTA' * 4)[:25]}.XML"

    def test_identity_code_case_is_kept(self) -> None:
        """Verify the identity code is used as given."""

        name = generate_file_name("abcdefgh12345678", "insert", "x")

        assert name.startswith("abcdefgh12345678_")

    def test_from_parts(self) -> None:
        """Verify the parts-based entry point."""

        parts = FileNameParts(identity_code=IDENTITY, action=Action.INSERT, description="Promo")

        assert generate_file_name_from_parts(parts) == f"{IDENTITY}_INSERIMENTO_PROMO.XML"

    @pytest.mark.parametrize(
        "identity, action, description",
        [
            ("SHORT", "insert", "x"),
            ("ABCDEFGH1234567!", "insert", "x"),
            ("ABCDEFGH12345678\n", "insert", "x"),
            (IDENTITY, "DELETE", "x"),
            (IDENTITY, "insert", "!!! ***"),
            (IDENTITY, "insert", ""),
        ],
    )
    def test_invalid_inputs(self, identity, action, description) -> None:
        """Verify malformed identity codes, actions and empty descriptions fail."""

        with pytest.raises(FileNameError) as exc_info:
            generate_file_name(identity, action, description)

        assert exc_info.value.identity_code == identity


class TestUnique:
    def test_timestamp_inserted_before_extension(self) -> None:
        """Verify the millisecond timestamp position."""

        name = generate_unique_file_name(IDENTITY, "insert", "Winter Offer 2024!!", timestamp_ms=1700000000000)

        assert name == "ABCDEFGH12345678_INSERIMENTO_WINTEROFFER2024_1700000000000.XML"

    def test_default_timestamp_is_current_time(self) -> None:
        """Verify a timestamp is generated when none is given."""

        parsed = parse_file_name(generate_unique_file_name(IDENTITY, "insert", "x"))

        assert parsed is not None
        assert parsed.disambiguator > 1_600_000_000_000


class TestParse:
    def test_round_trip(self) -> None:
        """Verify parsing recovers the parts of a generated name."""

        parsed = parse_file_name(generate_file_name(IDENTITY, "update", "Winter Offer 2024!!"))

        assert parsed.identity_code == IDENTITY
        assert parsed.action is Action.UPDATE
        assert parsed.description_prefix == "WINTEROFFER2024"
        assert parsed.disambiguator is None

    def test_unique_suffix_is_parsed(self) -> None:
        """Verify the timestamp suffix is tolerated and returned."""

        parsed = parse_file_name(f"{IDENTITY}_INSERIMENTO_PROMO_1700000000000.XML")

        assert parsed.description_prefix == "PROMO"
        assert parsed.disambiguator == 1700000000000

    @pytest.mark.parametrize(
        "name",
        [
            "offer.xml",
            f"{IDENTITY}_INSERIMENTO_PROMO.xml",
            f"{IDENTITY}_DELETE_PROMO.XML",
            f"{IDENTITY}_INSERIMENTO_promo.XML",
            f"{IDENTITY}_INSERIMENTO_{'A' * 26}.XML",
            "ABC_INSERIMENTO_PROMO.XML",
            f"{IDENTITY}_INSERIMENTO_PROMO.XML\n",
            f"{IDENTITY}\n_INSERIMENTO_PROMO.XML",
            "",
        ],
    )
    def test_non_conforming_names(self, name) -> None:
        """Verify non-conforming names yield None."""

        assert parse_file_name(name) is None
