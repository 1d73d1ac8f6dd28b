from datetime import datetime, timedelta, timezone

import pytest

from wundradb.schema import (
    Column,
    DataKind,
    Row,
    SqlDataType,
    TableSchema,
    decode_value,
    encode_value,
    value_to_string,
)


def _users_schema():
    return TableSchema(
        name="users",
        columns=[
            Column("id", SqlDataType(DataKind.INTEGER), nullable=False, primary_key=True),
            Column("name", SqlDataType(DataKind.VARCHAR, length=100)),
            Column("price", SqlDataType(DataKind.DECIMAL, precision=10, scale=2), nullable=True),
        ],
    )


def test_value_to_string_simple_values():
    assert value_to_string(42) == "42"
    assert value_to_string("Alice") == "Alice"
    assert value_to_string(True) == "true"
    assert value_to_string(False) == "false"
    assert value_to_string(None) == "null"


def test_value_to_string_floats():
    assert value_to_string(1.5) == "1.5"
    assert value_to_string(2.0) == "2"


def test_value_to_string_timestamp():
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert value_to_string(moment) == "2024-01-02T03:04:05+00:00"


def test_value_to_string_converts_timestamp_to_utc():
    local = datetime(2024, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    utc = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert value_to_string(local) == value_to_string(utc)


def test_value_to_string_rejects_unknown_type():
    with pytest.raises(TypeError):
        value_to_string(object())


@pytest.mark.parametrize(
    "value",
    [0, -7, 123456789, "", "hello", 3.25, True, False, None,
     datetime(2023, 5, 6, 7, 8, 9, 123000, tzinfo=timezone.utc)],
)
def test_encode_decode_round_trip(value):
    assert decode_value(encode_value(value)) == value


def test_encode_distinguishes_bool_from_int():
    assert encode_value(True) == {"Boolean": True}
    assert encode_value(1) == {"Integer": 1}
    assert decode_value(encode_value(True)) is True


def test_encode_rejects_unknown_type():
    with pytest.raises(TypeError):
        encode_value([1, 2])


@pytest.mark.parametrize(
    "data",
    [{"Integer": "1"}, {"Unknown": 1}, {}, {"Integer": 1, "Varchar": "x"}, "Integer"],
)
def test_decode_rejects_malformed(data):
    with pytest.raises(ValueError):
        decode_value(data)


def test_data_type_str():
    assert str(SqlDataType(DataKind.INTEGER)) == "Integer"
    assert str(SqlDataType(DataKind.VARCHAR, length=100)) == "Varchar(100)"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"kind": DataKind.VARCHAR},
        {"kind": DataKind.VARCHAR, "length": -1},
        {"kind": DataKind.DECIMAL, "precision": 10},
        {"kind": DataKind.DECIMAL, "precision": 300, "scale": 2},
        {"kind": DataKind.INTEGER, "length": 4},
        {"kind": DataKind.BOOLEAN, "scale": 1},
    ],
)
def test_data_type_validation(kwargs):
    with pytest.raises(ValueError):
        SqlDataType(**kwargs)


def test_data_type_dict_round_trip():
    for data_type in (
        SqlDataType(DataKind.INTEGER),
        SqlDataType(DataKind.VARCHAR, length=255),
        SqlDataType(DataKind.BOOLEAN),
        SqlDataType(DataKind.DECIMAL, precision=10, scale=2),
        SqlDataType(DataKind.TIMESTAMP),
    ):
        assert SqlDataType.from_dict(data_type.to_dict()) == data_type


def test_data_type_from_dict_rejects_unknown_kind():
    with pytest.raises(ValueError):
        SqlDataType.from_dict({"kind": "Blob"})


def test_schema_dict_round_trip():
    schema = _users_schema()
    restored = TableSchema.from_dict(schema.to_dict())
    assert restored == schema
    assert [c.name for c in restored.columns] == ["id", "name", "price"]
    assert restored.columns[0].primary_key is True


def test_column_from_dict_missing_field():
    with pytest.raises(ValueError):
        Column.from_dict({"name": "id"})


def test_row_bytes_round_trip():
    row = Row({"id": 1, "name": "Alice", "score": 9.5, "active": True, "note": None})
    assert Row.from_bytes(row.to_bytes()) == row


def test_row_dict_round_trip_with_timestamp():
    moment = datetime(2022, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
    row = Row({"created": moment})
    assert Row.from_dict(row.to_dict()).values["created"] == moment


def test_row_from_bytes_rejects_garbage():
    with pytest.raises(ValueError):
        Row.from_bytes(b"not json")
    with pytest.raises(ValueError):
        Row.from_bytes(b'{"values": [1, 2]}')


def test_empty_row_default():
    assert Row().values == {}
    assert Row.from_bytes(Row().to_bytes()) == Row()