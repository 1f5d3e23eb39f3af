import pytest

from dal.mysql.quoting import quote_identifier, quote_identifiers


def test_quote_identifier_wraps_in_backticks():
    assert quote_identifier("users") == "`users`"


def test_quote_identifier_escapes_embedded_backticks():
    """Backticks inside names are doubled so they cannot close the quote."""
    assert quote_identifier("we`ird") == "`we``ird`"
    assert quote_identifier("x`; DROP TABLE users; --") == "`x``; DROP TABLE users; --`"


@pytest.mark.parametrize("name", ["", "   "])
def test_quote_identifier_rejects_empty(name):
    with pytest.raises(ValueError):
        quote_identifier(name)


def test_quote_identifiers_joins_in_order():
    assert quote_identifiers(["id", "name", "order"]) == "`id`, `name`, `order`"
