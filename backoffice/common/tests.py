"""
Tests for shared helpers: GST validators, unit normalisation and error rendering
"""
import pytest

from backoffice.common.exceptions import (
    BackofficeError, DuplicateInvoiceNumberError, InvalidMasterRecord,
    PaymentExceedsBalanceError, ReferenceNotFoundError, ValidationError
)
from backoffice.common.units import Unit, normalize_unit
from backoffice.common.validators import (
    get_state_code, state_code_from_gstin, validate_gstin
)


class TestStateCodes:

    def test_known_states(self):
        assert get_state_code("Telangana") == "36"
        assert get_state_code("MAHARASHTRA") == "27"
        assert get_state_code("  tamil   nadu ") == "33"

    def test_ampersand_is_and(self):
        assert get_state_code("Jammu & Kashmir") == "01"

    def test_unknown_and_empty(self):
        assert get_state_code("Atlantis") == "00"
        assert get_state_code("") == "00"
        assert get_state_code(None) == "00"


class TestTaxIds:

    def test_gstin_shape(self):
        assert validate_gstin("36AABCD1234E1Z5")
        assert not validate_gstin("36AABCD1234E1X5")
        assert not validate_gstin("")

    def test_state_code_from_gstin(self):
        assert state_code_from_gstin("24AAACG5678H1Z2") == "24"
        assert state_code_from_gstin(None) is None


class TestNormalizeUnit:

    @pytest.mark.parametrize("raw,expected", [
        ("MT", Unit.TON),
        ("metric ton", Unit.TON),
        ("Kgs", Unit.KG),
        ("DRUMS", Unit.DRUM),
        ("ltr", Unit.LITRE),
        ("Nos", Unit.PIECE),
        ("mtr", Unit.METER),
        ("BOXES", Unit.BOX),
        ("KG", Unit.KG),
    ])
    def test_synonyms(self, raw, expected):
        assert normalize_unit(raw) == expected

    def test_unknown_and_empty_fall_back_to_piece(self):
        assert normalize_unit("barrel") == Unit.PIECE
        assert normalize_unit("") == Unit.PIECE
        assert normalize_unit(None) == Unit.PIECE


class TestErrors:

    def test_status_codes(self):
        assert ValidationError("x").status_code == 400
        assert PaymentExceedsBalanceError("x").status_code == 400
        assert ReferenceNotFoundError("x").status_code == 404
        assert ReferenceNotFoundError("x", status_code=400).status_code == 400
        assert DuplicateInvoiceNumberError("x").status_code == 409
        assert InvalidMasterRecord("x").status_code == 400

    def test_to_dict(self):
        error = ValidationError("Invalid invoice data", errors=["items: at least one line item is required"])
        assert error.to_dict() == {
            "error": "ValidationError",
            "message": "Invalid invoice data",
            "errors": ["items: at least one line item is required"],
        }

    def test_subclasses_share_base(self):
        assert isinstance(InvalidMasterRecord("x"), BackofficeError)
        assert isinstance(PaymentExceedsBalanceError("x"), ValidationError)
