"""
Tests for the Candid text decoder.

Covers:
- Scalars, annotations and digit-group separators
- Vectors, records (named, positional, hashed) and variants
- Optional values and gateway response tuples
- Malformed input reported without raising
"""

import pytest

from supplytrace.services.ledger.decoder import ValueDecoder, parse_number, unescape_string
from supplytrace.services.ledger.values import (
    Opt,
    Record,
    Scalar,
    TupleValue,
    Variant,
    Vector,
    idl_hash,
    unwrap,
)


class TestScalars:
    """Literal values."""

    def test_integer_with_underscores(self, decoder):
        result = decoder.decode("1_700_000_000_000_000_000")
        assert result.ok
        assert result.value == Scalar(1700000000000000000)

    def test_annotated_float(self, decoder):
        assert decoder.decode("(22.5 : float64)").value == Scalar(22.5)

    def test_negative_float(self, decoder):
        assert decoder.decode("-122.3 : float64").value == Scalar(-122.3)

    def test_booleans(self, decoder):
        assert decoder.decode("true").value == Scalar(True)
        assert decoder.decode("false").value == Scalar(False)

    def test_string_escapes(self, decoder):
        result = decoder.decode(r'"line\nbreak \"quoted\" caf\c3\a9 \u{1F600}"')
        assert result.value == Scalar('line\nbreak "quoted" café \U0001F600')

    def test_principal_is_text(self, decoder):
        assert decoder.decode('principal "aaaaa-aa"').value == Scalar("aaaaa-aa")

    def test_parse_number(self):
        assert parse_number("1_000") == Scalar(1000)
        assert parse_number("1.5e3") == Scalar(1500.0)
        assert parse_number("abc") is None

    def test_unescape_plain(self):
        assert unescape_string("plain") == "plain"


class TestVectors:
    """Vector decoding."""

    def test_empty_vector(self, decoder):
        result = decoder.decode("vec {}")
        assert result.ok
        assert result.value == Vector(())
        assert len(result.value) == 0

    def test_three_items_in_order(self, decoder):
        result = decoder.decode('vec { "a"; "b"; "c"; }')
        assert [item.value for item in result.value] == ["a", "b", "c"]

    def test_vector_of_records(self, decoder):
        result = decoder.decode("vec { record { a = 1 }; record { a = 2 } }")
        assert len(result.value) == 2
        assert result.value[1].get("a") == Scalar(2)


class TestRecords:
    """Record decoding."""

    def test_named_fields(self, decoder):
        result = decoder.decode('record { id = "p1"; name = "Tea; green { leaf }"; }')
        assert result.ok
        assert result.value.get("id") == Scalar("p1")
        assert result.value.get("name") == Scalar("Tea; green { leaf }")

    def test_positional_coordinates(self, decoder):
        text = "record { coordinates = opt record { 47.6 : float64; -122.3 : float64 } }"
        record = decoder.decode(text).value
        coordinates = unwrap(record.get("coordinates"))
        assert isinstance(coordinates, Record)
        assert coordinates.positional() == [Scalar(47.6), Scalar(-122.3)]

    def test_hashed_field_names(self, decoder):
        text = f'record {{ {idl_hash("name")} = "Coffee"; 1_234 = 5 }}'
        record = decoder.decode(text).value
        assert record.get("name") == Scalar("Coffee")
        assert record.get("1234") == Scalar(5)

    def test_underscored_field_ids(self, decoder):
        text = f'record {{ _{idl_hash("name"):_}_ = "Coffee"; _{idl_hash("batch_number"):_}_ = "B-1" }}'
        record = decoder.decode(text).value
        assert record.get("name") == Scalar("Coffee")
        assert record.get("batch_number") == Scalar("B-1")

    def test_identifier_with_underscores_kept(self, decoder):
        record = decoder.decode("record { _private = 1; batch_number = 2 }").value
        assert set(record.fields) == {"_private", "batch_number"}

    def test_missing_field_is_absent(self, decoder):
        record = decoder.decode("record { a = 1 }").value
        assert record.get("b") is None
        assert "b" not in record


class TestOptionalAndVariants:
    """opt, null and variant decoding."""

    def test_null(self, decoder):
        assert decoder.decode("null").value == Opt(None)

    def test_opt_null(self, decoder):
        value = decoder.decode("opt null").value
        assert value == Opt(Opt(None))
        assert unwrap(value) is None

    def test_opt_value(self, decoder):
        value = decoder.decode("opt (40.0 : float64)").value
        assert value.present
        assert unwrap(value) == Scalar(40.0)

    def test_bare_variant(self, decoder):
        value = decoder.decode("variant { Shipping }").value
        assert value == Variant("Shipping")

    def test_variant_with_payload(self, decoder):
        value = decoder.decode('variant { Err = "Product not found" }').value
        assert value.is_tag("Err")
        assert value.payload == Scalar("Product not found")

    def test_hashed_variant_tag(self, decoder):
        value = decoder.decode(f"variant {{ {idl_hash('Ok')} = true }}").value
        assert value.is_tag("Ok")

    def test_underscored_variant_tag(self, decoder):
        value = decoder.decode(f"variant {{ _{idl_hash('Err'):_}_ = \"missing\" }}").value
        assert value.is_tag("Err")
        assert value.payload == Scalar("missing")


class TestResponses:
    """Full gateway responses."""

    def test_tuple_with_trailing_comma(self, decoder):
        result = decoder.decode_response('(\n  "1755781994917_1000",\n)\n')
        assert result.ok
        assert isinstance(result.value, TupleValue)
        assert result.first == Scalar("1755781994917_1000")

    def test_multiple_values(self, decoder):
        result = decoder.decode_response('(1 : nat, "two")')
        assert result.value == TupleValue((Scalar(1), Scalar("two")))

    @pytest.mark.parametrize("text", ["(null)", "(opt null)"])
    def test_absent_trace(self, decoder, text):
        result = decoder.decode_response(text)
        assert result.ok
        assert unwrap(result.first) is None

    def test_unparenthesised_response(self, decoder):
        result = decoder.decode_response('"bare"')
        assert result.first == Scalar("bare")

    def test_product_list(self, decoder):
        from tests.conftest import PRODUCTS_RESPONSE

        result = decoder.decode_response(PRODUCTS_RESPONSE)
        assert result.ok
        products = result.first
        assert len(products) == 3
        assert products[2].get("description") == Scalar("Roasted { and } crushed")
        assert products[0].get("production_date") == Scalar(1700000000000000000)


class TestMalformedInput:
    """Decoding never raises; problems are reported."""

    @pytest.mark.parametrize("text", [
        "",
        "vec { 1; 2",
        "record { a = }",
        '"unterminated',
        "variant {}",
        "???",
        "record { = 1 }",
    ])
    def test_reports_errors(self, decoder, text):
        result = decoder.decode(text)
        assert not result.ok
        assert all(str(error) for error in result.errors)

    def test_partial_result_kept(self, decoder):
        result = decoder.decode("vec { 1; ???; 3 }")
        assert [item.value for item in result.value] == [1, 3]
        assert len(result.errors) == 1
        assert result.errors[0].fragment == "???"

    def test_bad_field_dropped(self, decoder):
        result = decoder.decode('record { a = 1; b = ???; c = "ok" }')
        assert set(result.value.fields) == {"a", "c"}
        assert not result.ok

    def test_nesting_limit(self):
        decoder = ValueDecoder(max_depth=3)
        result = decoder.decode("opt opt opt opt opt 1")
        assert not result.ok
