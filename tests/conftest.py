import pytest

from unity_changeset.pipeline import sort_changesets
from unity_changeset.release import ReleaseEntitlement, ReleaseStream, UnityChangeset


@pytest.fixture(autouse=True)
def _isolated_config_env(monkeypatch, tmp_path):
    monkeypatch.setenv("UNITY_CHANGESET_ROOT", str(tmp_path))
    monkeypatch.delenv("UNITY_CHANGESET_CONFIG", raising=False)


@pytest.fixture
def changesets_for_test() -> list[UnityChangeset]:
    zeros = "000000000000"
    lts = ReleaseStream.LTS
    return sort_changesets(
        [
            UnityChangeset("2018.2.0f1", zeros),
            UnityChangeset("2018.2.1f1", zeros),
            UnityChangeset("2018.2.2f1", zeros),
            UnityChangeset("2018.3.0f1", zeros),
            UnityChangeset("2018.3.1f1", zeros),
            UnityChangeset("2018.3.2f1", zeros),
            UnityChangeset("2018.4.0f1", zeros, lts),
            UnityChangeset("2018.4.1f1", zeros, lts),
            UnityChangeset("2018.4.2f1", zeros, lts, (ReleaseEntitlement.XLTS,)),
            UnityChangeset("2019.1.0a1", zeros),
            UnityChangeset("2019.1.0a2", zeros),
            UnityChangeset("2019.1.0b1", zeros),
            UnityChangeset("2019.1.0b2", zeros),
            UnityChangeset("2019.1.0f1", zeros),
            UnityChangeset("2019.1.0f2", zeros),
            UnityChangeset("2019.1.1f1", zeros),
            UnityChangeset("2019.2.0a1", zeros),
            UnityChangeset("2019.2.0a2", zeros),
            UnityChangeset("2019.2.0b1", zeros),
            UnityChangeset("2019.2.0b2", zeros),
            UnityChangeset("2019.2.0a1", zeros),
            UnityChangeset("2019.2.0a2", zeros),
        ]
    )
