import pytest

from unity_changeset.errors import InvalidInputError
from unity_changeset.release import (
    LIFECYCLE_ORDINALS,
    MAX_VERSION_NUMBER,
    ReleaseEntitlement,
    ReleaseStream,
    UnityChangeset,
    to_number,
)


def test_to_number_floor_of_partial_version():
    assert to_number("2018.3", False) == 201803000000


def test_to_number_ceiling_of_partial_version():
    assert to_number("2018.3", True) == 201803992599


@pytest.mark.parametrize("version", ["2018", "2018.3", "2018.3.1", "2018.3.1f", "2019.1.0b"])
def test_to_number_partial_versions_span_a_range(version):
    assert to_number(version, False) < to_number(version, True)


@pytest.mark.parametrize("version", ["2018.3.0f1", "2019.1.0a9", "6000.1.10p2"])
def test_to_number_full_versions_have_no_range(version):
    assert to_number(version, False) == to_number(version, True)


def test_to_number_orders_lifecycles_and_builds():
    ordered = ["2019.1.0a9", "2019.1.0a10", "2019.1.0b1", "2019.1.0f1", "2019.1.0p1", "2019.1.1f1", "2019.2.0a1"]
    numbers = [to_number(v) for v in ordered]
    assert numbers == sorted(numbers)
    assert len(set(numbers)) == len(numbers)


def test_to_number_returns_zero_without_leading_digit():
    assert to_number("", False) == 0
    assert to_number("", True) == 0
    assert to_number("latest", True) == 0
    assert to_number(None, False) == 0


def test_lifecycle_ordinal_table():
    assert LIFECYCLE_ORDINALS["A"] == 0
    assert LIFECYCLE_ORDINALS["B"] == 1
    assert LIFECYCLE_ORDINALS["F"] == 5
    assert LIFECYCLE_ORDINALS["P"] == 15
    assert LIFECYCLE_ORDINALS["Z"] == 25


def test_max_version_number_bounds_real_versions():
    assert MAX_VERSION_NUMBER == 999999992599
    assert to_number("6000.5.99p99") < MAX_VERSION_NUMBER


def test_changeset_defaults():
    changeset = UnityChangeset("2018.3.0f1", "abc123")
    assert changeset.version == "2018.3.0f1"
    assert changeset.changeset == "abc123"
    assert changeset.stream is ReleaseStream.UNDEFINED
    assert changeset.entitlements == ()
    assert changeset.lts is False
    assert changeset.xlts is False
    assert changeset.minor == "2018.3"
    assert changeset.lifecycle == "f"
    assert changeset.version_number == to_number("2018.3.0f1")


def test_changeset_with_lts_stream():
    changeset = UnityChangeset("2018.4.0f1", "abc123", ReleaseStream.LTS)
    assert changeset.lts is True
    assert changeset.xlts is False


def test_changeset_with_xlts_entitlement():
    changeset = UnityChangeset("2018.4.0f1", "abc123", "LTS", ["XLTS"])
    assert changeset.stream is ReleaseStream.LTS
    assert changeset.lts is True
    assert changeset.xlts is True
    assert changeset.entitlements == (ReleaseEntitlement.XLTS,)


def test_changeset_is_immutable():
    changeset = UnityChangeset("2018.3.0f1", "abc123")
    with pytest.raises(AttributeError):
        changeset.version = "2018.3.1f1"


@pytest.mark.parametrize(
    ("args", "message"),
    [
        (("", "abc123"), "Version must be a non-empty string"),
        (("2018.3.0f1", ""), "Changeset must be a non-empty string"),
        (("2018.3.0f1", "abc123", ReleaseStream.LTS, "XLTS"), "Entitlements must be a list"),
        (("2018.3", "abc123"), "Invalid Unity version"),
    ],
)
def test_changeset_constructor_errors(args, message):
    with pytest.raises(InvalidInputError, match=message):
        UnityChangeset(*args)


def test_changeset_str():
    assert str(UnityChangeset("2018.3.0f1", "abc123")) == "2018.3.0f1\tabc123"


def test_from_db_reconstructs_serialized_changeset():
    original = UnityChangeset("2018.3.0f2", "6e9a27477296")
    restored = UnityChangeset.from_db(str(original))
    assert (restored.version, restored.changeset) == (original.version, original.changeset)


def test_from_db_reads_optional_stream_and_entitlements():
    changeset = UnityChangeset.from_db("2021.3.45f1\t0da89fac8e79\tLTS\tXLTS\n")
    assert changeset.stream is ReleaseStream.LTS
    assert changeset.xlts is True


def test_from_db_rejects_rows_without_changeset():
    with pytest.raises(InvalidInputError):
        UnityChangeset.from_db("2018.3.0f2")


def test_hub_links():
    href = "unityhub://2018.4.36f1/6cd387d23174"
    assert UnityChangeset.is_valid_href(href)
    assert not UnityChangeset.is_valid_href("https://unity.com/releases/editor/whats-new/2018.4.36")
    changeset = UnityChangeset.from_href(href)
    assert changeset.version == "2018.4.36f1"
    assert changeset.changeset == "6cd387d23174"


def test_to_dict_shape():
    data = UnityChangeset("2018.4.2f1", "abc123", ReleaseStream.LTS, [ReleaseEntitlement.XLTS]).to_dict()
    assert data == {
        "version": "2018.4.2f1",
        "changeset": "abc123",
        "stream": "LTS",
        "entitlements": ["XLTS"],
        "lts": True,
        "xlts": True,
        "minor": "2018.4",
        "lifecycle": "f",
        "version_number": 201804020501,
    }
